# tileprofile/core/classify.py
"""
Ordered (predicate -> result) rule tables, evaluated first-match-wins.
A miss returns None; callers drop the feature. No rule raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

Tags = Mapping[str, Any]
Predicate = Callable[[Tags], bool]


@dataclass(frozen=True)
class Rule:
    """predicate(tags) -> result; result is a constant or a function of the tags."""
    predicate: Predicate
    result: str | Callable[[Tags], str | None]

    def apply(self, tags: Tags) -> str | None:
        if callable(self.result):
            return self.result(tags)
        return self.result


def _value(tags: Tags, key: str) -> str | None:
    value = tags.get(key)
    if value is None or value == "":
        return None
    return str(value)


def tag_in(key: str, *values: str) -> Predicate:
    allowed = frozenset(values)
    return lambda tags: _value(tags, key) in allowed


def has_tag(key: str) -> Predicate:
    return lambda tags: _value(tags, key) is not None


def tag_value(key: str) -> Callable[[Tags], str | None]:
    return lambda tags: _value(tags, key)


def always(tags: Tags) -> bool:
    return True


def first_match(rules: Sequence[Rule], tags: Tags) -> str | None:
    """Result of the first rule whose predicate holds and yields a value."""
    for rule in rules:
        if rule.predicate(tags):
            result = rule.apply(tags)
            if result is not None:
                return result
    return None


def coalesce_tags(tags: Tags, keys: Sequence[str]) -> str | None:
    """First non-empty value among keys, in order."""
    return first_match([Rule(has_tag(k), tag_value(k)) for k in keys], tags)


@dataclass(frozen=True)
class Classifier:
    """
    subclass_rules: tags -> subclass. class_rules: evaluated against {"subclass": subclass}.
    subclass_aliases rename a raw subclass before it is emitted.
    """
    subclass_rules: Sequence[Rule]
    class_rules: Sequence[Rule]
    subclass_aliases: Mapping[str, str] | None = None

    def subclass_of(self, tags: Tags) -> str | None:
        return first_match(self.subclass_rules, tags)

    def class_of_subclass(self, subclass: str | None) -> str | None:
        if subclass is None:
            return None
        return first_match(self.class_rules, {"subclass": subclass})

    def emitted_subclass(self, subclass: str | None) -> str | None:
        if subclass is None:
            return None
        return (self.subclass_aliases or {}).get(subclass, subclass)

    def classify(self, tags: Tags) -> tuple[str | None, str | None]:
        """(class, subclass) or (None, None) when no rule matches."""
        subclass = self.subclass_of(tags)
        clazz = self.class_of_subclass(subclass)
        if clazz is None:
            return None, None
        return clazz, self.emitted_subclass(subclass)


def subclass_in(*values: str) -> Predicate:
    return tag_in("subclass", *values)
