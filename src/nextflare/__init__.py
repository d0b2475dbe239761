"""Compile, extract and check wrangler.toml for OpenNext.js Cloudflare projects."""

__version__ = "0.1.0"
