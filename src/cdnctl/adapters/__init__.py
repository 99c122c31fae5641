"""Concrete backends (S3 storage, Cloudflare cache and status APIs)."""
