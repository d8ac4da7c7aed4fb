"""
Configuration merger for pincer.

Deep merge of configuration layers, with list append/remove operations so a
project file can extend a global allow list instead of replacing it.
"""

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries with list operation support.

    Merge rules:
    - Scalar values: override replaces base
    - Dicts: recursive deep merge
    - Lists: override replaces base
    - Key with '+' prefix: append the unique items to the base list
    - Key with '-' prefix: remove the items from the base list
    - None value: remove the key

    Args:
        base: Base configuration dictionary.
        override: Override configuration dictionary.

    Returns:
        New merged dictionary. Neither argument is modified.

    Examples:
        >>> deep_merge({"allowed_hosts": ["a.com"]}, {"+allowed_hosts": ["b.com"]})
        {'allowed_hosts': ['a.com', 'b.com']}

        >>> deep_merge({"allowed_hosts": ["a.com", "b.com"]}, {"-allowed_hosts": ["a.com"]})
        {'allowed_hosts': ['b.com']}
    """
    result = base.copy()

    for key, value in override.items():
        if key[:1] in ("+", "-") and isinstance(value, list):
            target = key[1:]
            current = result.get(target)
            if key[0] == "+":
                if isinstance(current, list):
                    result[target] = current + [item for item in value if item not in current]
                else:
                    result[target] = list(value)
            elif isinstance(current, list):
                result[target] = [item for item in current if item not in value]

        elif value is None:
            result.pop(key, None)

        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)

        else:
            result[key] = value

    return result


def set_nested_value(config: dict[str, Any], key_path: str, value: Any) -> dict[str, Any]:
    """
    Set a nested value by dot-separated path, creating intermediate dicts.

    Returns:
        The modified configuration dictionary.
    """
    keys = key_path.split(".")
    current = config

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return config
