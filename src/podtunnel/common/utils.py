"""Utility functions shared across podtunnel."""


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Args:
        value: String value to validate
        field_name: Name of the field for error messages

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def fqn(namespace: str, name: str) -> str:
    """Join a namespace and a name into a fully qualified name."""
    if not namespace:
        return name
    return f"{namespace}/{name}"


def split_fqn(path: str) -> tuple[str, str]:
    """Split ``namespace/name`` into its parts.

    A bare name yields an empty namespace.
    """
    if "/" not in path:
        return "", path
    namespace, _, name = path.partition("/")
    return namespace, name
