"""Tests for perch.routing.paths: area, subject, action and ancestor paths."""

import pytest

from perch.errors import ConfigurationError
from perch.routing.ancestors import Ancestor, AncestorChain
from perch.routing.paths import PathBuilder, render_url_template

CHAIN = AncestorChain((Ancestor("country", {"code": "IT"}), Ancestor("region", {"code": "LOM"})))
PARAMS = {"language": "it", "area": "admin", "subject": "city"}


@pytest.fixture
def paths() -> PathBuilder:
    return PathBuilder(PARAMS, CHAIN)


class TestRenderUrlTemplate:
    def test_no_key_leaves_template(self) -> None:
        assert render_url_template("edit/{key}") == "edit/{key}"

    def test_scalar_key(self) -> None:
        assert render_url_template("edit/{key}", 42) == "edit/42"

    def test_compound_key_joined(self) -> None:
        key = {"country": "IT", "code": "LOM"}
        assert render_url_template("edit/{key}", key) == "edit/IT|LOM"

    def test_single_fields(self) -> None:
        key = {"country": "IT", "code": "LOM"}
        assert render_url_template("{country}/regions/{code}", key) == "IT/regions/LOM"

    def test_unknown_placeholder(self) -> None:
        with pytest.raises(ConfigurationError, match="year"):
            render_url_template("{year}/show", {"code": "IT"})

    def test_declared_key_order(self) -> None:
        key = {"code": "LOM", "country": "IT"}
        assert render_url_template("edit/{key}", key, ("country", "code")) == "edit/IT|LOM"

    def test_declared_field_missing(self) -> None:
        with pytest.raises(ConfigurationError, match="country"):
            render_url_template("edit/{key}", {"code": "LOM"}, ("country", "code"))

    def test_field_named_key_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="clashes"):
            render_url_template("edit/{key}", {"key": "7", "code": "LOM"})


class TestToArea:
    def test_language_and_area(self, paths: PathBuilder) -> None:
        assert paths.to_area() == ["it", "admin"]

    def test_language_override(self, paths: PathBuilder) -> None:
        assert paths.to_area("en") == ["en", "admin"]

    def test_missing_parts_skipped(self) -> None:
        assert PathBuilder({}).to_area() == []
        assert PathBuilder({"area": "admin"}).to_area() == ["admin"]


class TestToSubject:
    def test_ancestors_and_subject(self, paths: PathBuilder) -> None:
        assert paths.to_subject() == ["it", "admin", "country", "IT", "region", "LOM", "city"]

    def test_idempotent(self, paths: PathBuilder) -> None:
        assert paths.to_subject() == paths.to_subject()
        assert paths.to_subject("en") == paths.to_subject("en")

    def test_compound_ancestor_key(self) -> None:
        chain = AncestorChain((Ancestor("region", {"country": "IT", "code": "LOM"}),))
        paths = PathBuilder({"subject": "city"}, chain)
        assert paths.to_subject() == ["region", "IT|LOM", "city"]

    def test_without_subject(self) -> None:
        assert PathBuilder({"area": "admin"}, CHAIN).to_subject()[-1] == "LOM"


class TestToAction:
    def test_plain_action(self, paths: PathBuilder) -> None:
        assert paths.to_action("edit") == "/it/admin/country/IT/region/LOM/city/edit"

    def test_template_anchored_at_area(self, paths: PathBuilder) -> None:
        assert paths.to_action("edit", "reports/{key}", 5) == "it/admin/reports/5"

    def test_template_anchored_at_subject(self, paths: PathBuilder) -> None:
        url = paths.to_action("show", "*{code}/show", {"code": "MI"})
        assert url == "it/admin/country/IT/region/LOM/city/MI/show"

    def test_template_with_key_fields(self, paths: PathBuilder) -> None:
        key = {"code": "MI", "region": "LOM"}
        url = paths.to_action("edit", "edit/{key}", key, ("region", "code"))
        assert url == "it/admin/edit/LOM|MI"

    def test_template_without_key_not_rendered(self, paths: PathBuilder) -> None:
        assert paths.to_action("edit", "*edit/{key}") == "it/admin/country/IT/region/LOM/city/edit/{key}"


class TestToAncestor:
    def test_stops_at_last(self, paths: PathBuilder) -> None:
        assert paths.to_ancestor("region") == ["it", "admin", "country", "IT", "region", "list"]

    def test_first_ancestor(self, paths: PathBuilder) -> None:
        assert paths.to_ancestor("country") == ["it", "admin", "country", "list"]

    def test_without_area(self) -> None:
        paths = PathBuilder({}, CHAIN)
        assert paths.to_ancestor("region") == ["country", "IT", "region", "list"]
