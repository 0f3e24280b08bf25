"""Cisco Webex channel plugin."""
