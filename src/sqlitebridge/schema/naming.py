"""Identifier conversions between SQL names and generated TypeScript names."""

from __future__ import annotations

import re

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9]+|(?<=[a-z0-9])(?=[A-Z])")
_SINGULAR_ES = ("sses", "shes", "ches", "xes", "zes", "uses")
_INVARIANT_ENDINGS = ("ss", "us", "is")


def split_words(name: str) -> list[str]:
    """Split snake_case, kebab-case, spaced or camelCase names into words."""
    return [w for w in _WORD_SPLIT.split(name) if w]


def to_pascal_case(name: str) -> str:
    result = "".join(w[:1].upper() + w[1:] for w in split_words(name))
    if result[:1].isdigit():
        result = "_" + result
    return result


def to_camel_case(name: str) -> str:
    """``created_at`` -> ``createdAt``; already-camel names are kept."""
    words = split_words(name)
    if not words:
        return name
    first = words[0]
    # Leave all-caps words alone except for the leading one
    first = first.lower() if first.isupper() or len(words) > 1 else first[:1].lower() + first[1:]
    result = first + "".join(w[:1].upper() + w[1:] for w in words[1:])
    if result[:1].isdigit():
        result = "_" + result
    return result


def to_kebab_case(name: str) -> str:
    return "-".join(w.lower() for w in split_words(name))


def singularize(word: str) -> str:
    lower = word.lower()
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + ("Y" if word[-3].isupper() else "y")
    if lower.endswith(_SINGULAR_ES):
        return word[:-2]
    if lower.endswith(_INVARIANT_ENDINGS):
        return word
    if lower.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def pluralize_word(word: str) -> str:
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def interface_name(table: str) -> str:
    """Entity type name for a table: ``user_roles`` -> ``UserRole``."""
    return to_pascal_case(singularize(table))


def model_file_stem(table: str) -> str:
    """Module name for a table's model file: ``user_roles`` -> ``user-role``."""
    return to_kebab_case(interface_name(table))


def service_class_name(table: str) -> str:
    """``todos`` -> ``TodosService``."""
    return f"{to_pascal_case(table)}Service"


def service_file_stem(table: str) -> str:
    return f"{to_kebab_case(table)}.service"


def table_name_variants(name: str) -> list[str]:
    """Singular and plural spellings a query file may use for a table."""
    variants = [name, singularize(name), pluralize_word(singularize(name))]
    seen: list[str] = []
    for v in variants:
        if v.casefold() not in (s.casefold() for s in seen):
            seen.append(v)
    return seen
