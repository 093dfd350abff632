"""Value rendering shared by the serializers."""


def to_text(value) -> str:
    """Render a column value as response text. Booleans and NULL follow JSON spelling."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
