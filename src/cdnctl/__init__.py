"""cdnctl: manage files on an S3-compatible CDN bucket behind Cloudflare."""

__version__ = "0.1.0"
