"""MacBookPro14,3 host fixes — Wi-Fi NVRAM and CS8409 audio driver setup."""

__version__ = "0.1.0"
