import pytest

from kcmap.categories import (
    DEFAULT_VOCABULARY,
    TagPredicate,
    Vocabulary,
    category_for,
    rules_for,
    type_for,
)


def test_default_table_has_six_categories_in_order():
    assert DEFAULT_VOCABULARY.categories == [
        "playgrounds", "parks", "museums", "galleries", "science", "planetariums",
    ]
    assert DEFAULT_VOCABULARY.types == [
        "playground", "park", "museum", "gallery", "science_center", "planetarium",
    ]


def test_type_and_category_lookups_are_inverse():
    for category in DEFAULT_VOCABULARY.categories:
        assert category_for(type_for(category)) == category
    assert type_for("science") == "science_center"
    assert type_for("galleries") == "gallery"


def test_unknown_category_is_none():
    assert rules_for("zoos") is None
    assert type_for("zoos") is None
    assert category_for("zoo") is None


def test_parks_rule_predicates():
    rule = rules_for("parks")
    assert [str(p) for p in rule.predicates] == [
        "leisure=park",
        "leisure=water_park",
        "leisure=swimming_pool",
        "tourism=picnic_site",
        "natural=beach",
    ]
    assert [str(p) for p in rule.area_predicates] == ["leisure=park"]
    assert rule.matches({"natural": "beach"})
    assert not rule.matches({"tourism": "museum"})


def test_tag_predicate_parse():
    assert TagPredicate.parse("amenity = library") == TagPredicate("amenity", "library")
    with pytest.raises(ValueError):
        TagPredicate.parse("amenity")
    with pytest.raises(ValueError):
        TagPredicate.parse("=library")


class TestConfirmation:
    def test_planetarium_needs_keyword_or_exact_tag(self):
        rule = rules_for("planetariums")
        assert rule.needs_confirmation
        assert rule.confirms({"name": "Union Station Planetarium"})
        assert rule.confirms({"name": "Sky Dome", "description": "A small PLANETARIUM"})
        assert rule.confirms({"name": "Sky Dome", "amenity": "planetarium"})
        assert not rule.confirms({"name": "Central Library", "amenity": "library"})

    def test_rules_without_confirmation_accept_everything(self):
        assert rules_for("parks").confirms({"name": "Anything"})


class TestFromConfig:
    def test_extra_category_is_added(self):
        vocab = Vocabulary.from_config({
            "zoos": {"type": "zoo", "tags": ["tourism=zoo"], "area_tags": ["tourism=zoo"]},
        })
        assert vocab.type_for("zoos") == "zoo"
        assert vocab.category_for("zoo") == "zoos"
        assert vocab.categories[-1] == "zoos"
        assert vocab.rules_for("zoos").matches({"tourism": "zoo"})

    def test_extra_category_can_replace_default(self):
        vocab = Vocabulary.from_config({
            "museums": {"type": "museum", "tags": ["tourism=museum"]},
        })
        rule = vocab.rules_for("museums")
        assert not rule.matches({"amenity": "library"})
        assert vocab.category_for("museum") == "museums"

    def test_duplicate_type_rejected(self):
        with pytest.raises(ValueError):
            Vocabulary.from_config({"more_parks": {"type": "park", "tags": ["leisure=garden"]}})

    def test_incomplete_entry_rejected(self):
        with pytest.raises(ValueError):
            Vocabulary.from_config({"zoos": {"type": "zoo"}})

    def test_default_vocabulary_untouched(self):
        Vocabulary.from_config({"zoos": {"type": "zoo", "tags": ["tourism=zoo"]}})
        assert "zoos" not in DEFAULT_VOCABULARY.categories
