"""
Relay URL resolution for the client adapter.

Dependencies: None
System role: Mixed-content safe connection URL
"""

_SECURE_SCHEMES = {
    "http://": "https://",
    "ws://": "wss://",
}


def effective_url(url: str, page_protocol: str | None = None) -> str:
    """
    Upgrade an insecure relay URL when the hosting page is secure.

    A page served over https cannot open ws:// sockets, so http:// and
    ws:// are rewritten to their TLS equivalents. Other URLs pass through.

    Args:
        url: Configured relay URL
        page_protocol: Protocol of the hosting page ("https:" or "http:"), None if unknown

    Returns:
        str: URL to connect to
    """
    if (page_protocol or "").lower().rstrip(":") != "https":
        return url
    for insecure, secure in _SECURE_SCHEMES.items():
        if url.lower().startswith(insecure):
            return secure + url[len(insecure):]
    return url
