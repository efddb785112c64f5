"""
Cloudflare Backup - Export CloudFlare DNS zones to flat text files.

This package lists the zones on a CloudFlare account and writes each zone's
DNS records (and optionally its page rules) to a human-readable backup file.
"""

__version__ = "0.1.0"
__author__ = "Cloudflare Backup Contributors"
