"""Tests for perch.errors: exception hierarchy and error messages."""

from perch.data.errors import DataError, DriverNotInstalledError, QueryError
from perch.errors import (
    CompositionError,
    ConfigurationError,
    KeyMismatchError,
    MissingConfigurationError,
    NoActionError,
    PerchError,
    RouteResolutionError,
    SubjectNotFoundError,
    TranslationNotFoundError,
    UnhandledActionError,
)


class TestHierarchy:
    def test_everything_is_perch_error(self) -> None:
        for cls in (
            CompositionError,
            ConfigurationError,
            KeyMismatchError,
            MissingConfigurationError,
            NoActionError,
            RouteResolutionError,
            SubjectNotFoundError,
            TranslationNotFoundError,
            UnhandledActionError,
            DataError,
        ):
            assert issubclass(cls, PerchError)

    def test_data_errors(self) -> None:
        assert issubclass(DriverNotInstalledError, DataError)
        assert issubclass(QueryError, DataError)


class TestCompositionError:
    def test_missing_capability(self) -> None:
        err = CompositionError("region", "ORM", "Database")
        assert err.subject == "region"
        assert err.capability == "ORM"
        assert err.missing == "Database"
        assert err.kind == "capability"
        assert "required capability 'Database' is not active" in str(err)

    def test_missing_injection(self) -> None:
        err = CompositionError("region", "Database", "query_builder", kind="injection")
        assert err.kind == "injection"
        assert "'query_builder' has not been injected" in str(err)


class TestMessages:
    def test_route_resolution(self) -> None:
        err = RouteResolutionError("country", "code")
        assert (err.ancestor, err.field) == ("country", "code")
        assert "'country' as ancestor" in str(err)
        assert "'code'" in str(err)

    def test_missing_configuration(self) -> None:
        err = MissingConfigurationError("region", "ORM table parameter")
        assert str(err) == "Missing ORM table parameter in 'region' subject configuration"

    def test_key_mismatch(self) -> None:
        err = KeyMismatchError("geo.region", "country")
        assert (err.table, err.field) == ("geo.region", "country")
        assert "'geo.region'" in str(err)

    def test_no_action(self) -> None:
        assert str(NoActionError("region")) == "No action defined for subject 'region'"

    def test_unhandled_action_with_area(self) -> None:
        err = UnhandledActionError("admin", "region", "export")
        assert str(err) == "No method for handling admin region export"
        assert err.area == "admin"

    def test_unhandled_action_without_area(self) -> None:
        assert str(UnhandledActionError(None, "region", "export")) == (
            "No method for handling region export"
        )

    def test_translation_not_found(self) -> None:
        err = TranslationNotFoundError("/srv/locales/it/region.ini")
        assert err.path == "/srv/locales/it/region.ini"

    def test_subject_not_found(self) -> None:
        err = SubjectNotFoundError("list-items", "app.subjects.ListItems")
        assert err.class_name == "app.subjects.ListItems"

    def test_query_error_sqlstate(self) -> None:
        assert QueryError("boom").sqlstate is None
        assert QueryError("boom", sqlstate="55000").sqlstate == "55000"
