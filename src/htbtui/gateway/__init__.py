"""Remote access to the labs API."""

from .client import HTBClient, HTB_API_URL

__all__ = ["HTBClient", "HTB_API_URL"]
