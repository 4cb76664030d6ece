"""Tests for perch.routing.ancestors: chain resolution from route markers."""

import pytest
from conftest import DictConfigurationLoader

from perch.errors import MissingConfigurationError, RouteResolutionError
from perch.routing.ancestors import (
    Ancestor,
    AncestorChain,
    AncestorResolver,
    normalize_primary_key,
)
from perch.routing.route import Route


class TestNormalizePrimaryKey:
    def test_scalar(self) -> None:
        assert normalize_primary_key("code") == ["code"]

    def test_sequence(self) -> None:
        assert normalize_primary_key(("country", "code")) == ["country", "code"]


class TestAncestorChain:
    def test_mapping_interface(self) -> None:
        chain = AncestorChain((Ancestor("country", {"code": "IT"}), Ancestor("region", {"code": "LOM"})))
        assert list(chain) == ["country", "region"]
        assert len(chain) == 2
        assert chain["region"] == {"code": "LOM"}
        assert "country" in chain

    def test_key_segment_joins_compound_keys(self) -> None:
        chain = AncestorChain((Ancestor("region", {"country": "IT", "code": "LOM"}),))
        assert chain.key_segment("region") == "IT|LOM"

    def test_locales(self) -> None:
        chain = AncestorChain(
            (Ancestor("country", {"code": "IT"}, "country.ini"), Ancestor("region", {"code": "LOM"}))
        )
        assert chain.locales == {"country": "country.ini"}

    def test_empty(self) -> None:
        assert len(AncestorChain()) == 0


class TestAncestorResolver:
    def test_markers_resolve_in_order(self, loader: DictConfigurationLoader) -> None:
        route = Route({"ancestor0": "country", "ancestor1": "region", "code": "LOM", "country": "IT"})
        chain = AncestorResolver(loader).resolve(route)
        assert list(chain) == ["country", "region"]
        assert chain["country"] == {"code": "LOM"}
        assert chain["region"] == {"country": "IT", "code": "LOM"}

    def test_k_plus_one_entries(self) -> None:
        names = [f"e{i}" for i in range(4)]
        loader = DictConfigurationLoader({n: {"ORM": {"primaryKey": "id"}} for n in names})
        params = {f"ancestor{i}": n for i, n in enumerate(names)}
        params["id"] = "7"
        chain = AncestorResolver(loader).resolve(Route(params))
        assert list(chain) == names

    def test_compound_key_keeps_declared_order(self, loader: DictConfigurationLoader) -> None:
        route = Route({"ancestor0": "region", "code": "LOM", "country": "IT"})
        chain = AncestorResolver(loader).resolve(route)
        assert list(chain["region"]) == ["country", "code"]

    def test_missing_key_parameter(self, loader: DictConfigurationLoader) -> None:
        route = Route({"ancestor0": "region", "code": "LOM"})
        with pytest.raises(RouteResolutionError) as exc_info:
            AncestorResolver(loader).resolve(route)
        assert exc_info.value.ancestor == "region"
        assert exc_info.value.field == "country"

    def test_missing_primary_key_declaration(self) -> None:
        loader = DictConfigurationLoader({"tag": {"ORM": {"table": "tag"}}})
        with pytest.raises(MissingConfigurationError, match="ORM.primaryKey"):
            AncestorResolver(loader).resolve(Route({"ancestor0": "tag"}))

    def test_no_markers(self, loader: DictConfigurationLoader) -> None:
        chain = AncestorResolver(loader).resolve(Route({"action": "list"}))
        assert len(chain) == 0
        assert loader.loaded == []

    def test_repeated_marker_resolves_once(self, loader: DictConfigurationLoader) -> None:
        route = Route({"ancestor0": "country", "ancestor1": "country", "code": "IT"})
        chain = AncestorResolver(loader).resolve(route)
        assert list(chain) == ["country"]
        assert loader.loaded == ["country"]

    def test_locale_recorded(self) -> None:
        loader = DictConfigurationLoader(
            {"country": {"locale": "country.ini", "ORM": {"primaryKey": "code"}}}
        )
        chain = AncestorResolver(loader).resolve(Route({"ancestor0": "country", "code": "IT"}))
        assert chain.locales == {"country": "country.ini"}
