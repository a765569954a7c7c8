from collections.abc import Collection


def is_allowed(client_ip: str, allowed_ips: Collection[str], denied_ips: Collection[str]) -> bool:
    """Deny list wins, an empty allow list lets everyone else in.

    Addresses are compared as plain strings, so "::1" and
    "0:0:0:0:0:0:0:1" are two different clients.
    """
    if client_ip in denied_ips:
        return False
    if not allowed_ips:
        return True
    return client_ip in allowed_ips
