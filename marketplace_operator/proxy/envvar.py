"""Operations on ordered lists of container environment variables.

Names are unique within a single list. Every function here returns a new list
and leaves its arguments untouched.
"""

from collections.abc import Iterable, Sequence

from marketplace_operator.manifest import EnvVar

__all__ = [
    "index_of",
    "get_value",
    "remove_at",
    "remove_by_name",
    "merge",
    "diff",
]


def index_of(env: Sequence[EnvVar], name: str) -> int | None:
    """Return the position of the variable with the given name, if present."""
    for i, var in enumerate(env):
        if var.name == name:
            return i
    return None


def get_value(env: Sequence[EnvVar], name: str) -> str | None:
    """Return the value of the named variable or None if it is absent."""
    if (i := index_of(env, name)) is None:
        return None
    return env[i].value


def remove_at(env: Sequence[EnvVar], index: int) -> list[EnvVar]:
    """Return a copy of the list without the element at the index.

    The relative order of the remaining elements is preserved.
    """
    if not 0 <= index < len(env):
        raise IndexError(f"EnvVar index {index} out of range for {len(env)} items")
    return [*env[:index], *env[index + 1 :]]


def remove_by_name(env: Sequence[EnvVar], name: str) -> list[EnvVar]:
    """Return a copy of the list without the named variable."""
    if (i := index_of(env, name)) is None:
        return list(env)
    return remove_at(env, i)


def merge(env: Sequence[EnvVar], overrides: Iterable[EnvVar]) -> list[EnvVar]:
    """Merge variables by name.

    Variables already present are overwritten in place, new variables are
    appended at the end in the order given.
    """
    result = list(env)
    for var in overrides:
        if (i := index_of(result, var.name)) is None:
            result.append(var)
        else:
            result[i] = var
    return result


def diff(current: Sequence[EnvVar], desired: Sequence[EnvVar]) -> set[str]:
    """Return the names that are missing from either list or differ in value."""
    current_values = {var.name: var.value for var in current}
    desired_values = {var.name: var.value for var in desired}
    return {
        name
        for name in current_values.keys() | desired_values.keys()
        if current_values.get(name) != desired_values.get(name)
    }
