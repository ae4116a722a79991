# sessiontree/helpers.py

from typing import Iterable

from .utils.logger import get_logger


def generate_unique_name(base_name: str, existing_names: Iterable[str]) -> str:
    """
    Generate a unique name by appending a number if the base name already exists.

    Args:
        base_name: The desired base name
        existing_names: Names to avoid

    Returns:
        A unique name that doesn't conflict with existing names
    """
    existing = set(existing_names)
    if base_name not in existing:
        return base_name
    counter = 1
    while f"{base_name} ({counter})" in existing:
        counter += 1
    unique = f"{base_name} ({counter})"
    get_logger("sessiontree.helpers").debug(f"Renamed '{base_name}' to '{unique}'")
    return unique
