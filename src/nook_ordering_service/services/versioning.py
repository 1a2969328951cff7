"""Dotted app version comparison."""


def _components(version: str) -> list[int]:
    parts = []
    for part in version.strip().split("."):
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(0)
    return parts


def is_version_valid(current: str, required: str) -> bool:
    """Check that ``current`` is at least ``required``.

    Versions are compared component by component; missing trailing
    components count as 0, as do components that are not numbers.

    Args:
        current: Version reported by the client (e.g., "1.2")
        required: Minimum supported version (e.g., "1.2.0")

    Returns:
        True if the current version is equal to or newer than the required one
    """
    current_parts = _components(current)
    required_parts = _components(required)
    length = max(len(current_parts), len(required_parts))
    current_parts += [0] * (length - len(current_parts))
    required_parts += [0] * (length - len(required_parts))

    for have, need in zip(current_parts, required_parts):
        if have > need:
            return True
        if have < need:
            return False
    return True
