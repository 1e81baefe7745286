"""Shared item name normalization utilities."""


def clean_item_name(item_name: str | None) -> str:
    """Trim surrounding whitespace from a display name."""
    if item_name is None:
        return ""
    return str(item_name).strip()


def normalize_item_name(item_name: str | None) -> str:
    """Normalize an item name into its case-insensitive identity key."""
    return clean_item_name(item_name).casefold()


def same_item_name(first: str | None, second: str | None) -> bool:
    """Whether two names denote the same item."""
    return normalize_item_name(first) == normalize_item_name(second)
