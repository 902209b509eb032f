"""
Activity categories and the OpenStreetMap tags that feed them.

Each category (plural, e.g. "museums") maps to an ordered list of tag
predicates used to build source queries, and to a canonical place type
(singular, e.g. "museum") stored on every Place.

Categories whose tags overlap with unrelated venues carry a confirmation
step: a keyword that must show up in the name / description tag, or an
exact tag that vouches for the feature on its own.  Planetariums are the
reference case: plenty of libraries and schools get tagged with things a
planetarium query also hits.

New categories are data: declare them under ``categories_extra`` in the
app's app.yaml instead of editing this table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class TagPredicate:
    """A single ``key=value`` tag match."""

    key: str
    value: str

    @classmethod
    def parse(cls, text: str) -> TagPredicate:
        key, sep, value = text.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            raise ValueError(f"tag predicate must look like key=value, got {text!r}")
        return cls(key, value)

    def matches(self, tags: Mapping[str, str]) -> bool:
        return tags.get(self.key) == self.value

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class CategoryRule:
    category: str
    predicates: tuple[TagPredicate, ...]
    place_type: str
    # Also queried as ways/relations; the source answers those with a center.
    area_predicates: tuple[TagPredicate, ...] = ()
    confirm_keywords: tuple[str, ...] = ()
    confirm_tags: tuple[TagPredicate, ...] = ()

    def matches(self, tags: Mapping[str, str]) -> bool:
        """True if any node or area predicate matches the tags."""
        return any(p.matches(tags) for p in self.predicates + self.area_predicates)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.confirm_keywords or self.confirm_tags)

    def confirms(self, tags: Mapping[str, str]) -> bool:
        """Extra acceptance check for categories with ambiguous tags.

        Passes when the rule has no confirmation step, when a keyword occurs
        in the name or description tag, or when a confirm tag matches exactly.
        """
        if not self.needs_confirmation:
            return True
        if any(p.matches(tags) for p in self.confirm_tags):
            return True
        haystack = " ".join(
            (tags.get("name") or "", tags.get("description") or "")
        ).lower()
        return any(kw.lower() in haystack for kw in self.confirm_keywords)


def _rule(
    category: str,
    place_type: str,
    tags: Iterable[str],
    area_tags: Iterable[str] = (),
    confirm_keywords: Iterable[str] = (),
    confirm_tags: Iterable[str] = (),
) -> CategoryRule:
    return CategoryRule(
        category=category,
        predicates=tuple(TagPredicate.parse(t) for t in tags),
        place_type=place_type,
        area_predicates=tuple(TagPredicate.parse(t) for t in area_tags),
        confirm_keywords=tuple(confirm_keywords),
        confirm_tags=tuple(TagPredicate.parse(t) for t in confirm_tags),
    )


# Kansas City reference deployment
DEFAULT_RULES: tuple[CategoryRule, ...] = (
    _rule(
        "playgrounds", "playground",
        tags=("leisure=playground",),
        area_tags=("leisure=playground",),
    ),
    _rule(
        "parks", "park",
        tags=(
            "leisure=park",
            "leisure=water_park",
            "leisure=swimming_pool",
            "tourism=picnic_site",
            "natural=beach",
        ),
        area_tags=("leisure=park",),
    ),
    _rule("museums", "museum", tags=("tourism=museum", "amenity=library")),
    _rule("galleries", "gallery", tags=("tourism=gallery",)),
    _rule(
        "science", "science_center",
        tags=("amenity=science_center", "tourism=science_center"),
    ),
    _rule(
        "planetariums", "planetarium",
        tags=("amenity=planetarium",),
        confirm_keywords=("planetarium",),
        confirm_tags=("amenity=planetarium",),
    ),
)


class Vocabulary:
    """Lookup tables between categories, tag rules and place types."""

    def __init__(self, rules: Iterable[CategoryRule] = DEFAULT_RULES) -> None:
        self._rules: dict[str, CategoryRule] = {}
        self._by_type: dict[str, str] = {}
        for rule in rules:
            self._add(rule)

    def _add(self, rule: CategoryRule) -> None:
        previous = self._rules.get(rule.category)
        if previous is not None:
            del self._by_type[previous.place_type]
        owner = self._by_type.get(rule.place_type)
        if owner is not None:
            raise ValueError(
                f"place type {rule.place_type!r} already belongs to category {owner!r}"
            )
        self._rules[rule.category] = rule
        self._by_type[rule.place_type] = rule.category

    @classmethod
    def from_config(
        cls,
        extra: Mapping[str, Mapping[str, Any]] | None = None,
        base: Iterable[CategoryRule] = DEFAULT_RULES,
    ) -> Vocabulary:
        """Default table plus categories declared in app.yaml.

        An extra entry with the name of an existing category replaces it.
        """
        vocab = cls(base)
        for category, entry in (extra or {}).items():
            if not entry.get("type") or not entry.get("tags"):
                raise ValueError(f"category {category!r} needs both 'type' and 'tags'")
            vocab._add(_rule(
                category,
                entry["type"],
                tags=entry["tags"],
                area_tags=entry.get("area_tags", ()),
                confirm_keywords=entry.get("confirm_keywords", ()),
                confirm_tags=entry.get("confirm_tags", ()),
            ))
        return vocab

    @property
    def categories(self) -> list[str]:
        return list(self._rules)

    @property
    def types(self) -> list[str]:
        return [r.place_type for r in self._rules.values()]

    def rules_for(self, category: str) -> CategoryRule | None:
        return self._rules.get(category)

    def type_for(self, category: str) -> str | None:
        rule = self._rules.get(category)
        return rule.place_type if rule else None

    def category_for(self, place_type: str) -> str | None:
        return self._by_type.get(place_type)


DEFAULT_VOCABULARY = Vocabulary()


def rules_for(category: str) -> CategoryRule | None:
    return DEFAULT_VOCABULARY.rules_for(category)


def type_for(category: str) -> str | None:
    return DEFAULT_VOCABULARY.type_for(category)


def category_for(place_type: str) -> str | None:
    return DEFAULT_VOCABULARY.category_for(place_type)
