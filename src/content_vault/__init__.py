"""
Content Vault: tiered access to per-project video and headshot libraries
"""
__version__ = "0.1.0"
