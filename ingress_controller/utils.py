import hashlib


def get_resource_key(namespace: str, name: str) -> str:
    """Generate the key in k8s format (namespace/name) for a given resource."""
    return f"{namespace}/{name}"


def get_last_chunk_of_slashed(s: str) -> str:
    """Split a string by slash and return the last chunk.

    Resource IDs reference other resources by full path, e.g.
    ".../applicationGateways/gw/httpListeners/fl-http"; the referenced
    name is the last segment.
    """
    return s.split("/")[-1]


def shorten_name(name: str, max_length: int) -> str:
    """
    Deterministically shorten a resource name to fit within max_length.

    Names within the limit are returned unchanged. Longer names are truncated
    and suffixed with a short digest of the full name so that two long names
    sharing a prefix stay distinct.

    Args:
        name: Name to shorten
        max_length: Maximum allowed length

    Returns:
        str: Name of at most max_length characters
    """
    if len(name) <= max_length:
        return name
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:8]
    return f"{name[:max_length - len(digest) - 1]}-{digest}"
