from crudkit.query.projection import (
    Projection,
    default_projection_for,
    expansion_projection,
    field_names,
    register_default_projection,
)


def test_field_names_accepts_strings_and_iterables():
    assert field_names("title, likes  body") == frozenset({"title", "likes", "body"})
    assert field_names(["title", " ", ""]) == frozenset({"title"})
    assert field_names(None) == frozenset()


class TestProjection:

    def test_allows(self):
        only = Projection(include=frozenset({"title", "likes"}))
        assert only.allows("title")
        assert not only.allows("id")

        without = Projection.without("password_hash")
        assert without.allows("id")
        assert not without.allows("password_hash")

    def test_empty(self):
        assert Projection().is_empty
        assert Projection.without("").is_empty


class TestMerge:

    def test_no_request_fields_keeps_default(self):
        default = Projection.without("password_hash")
        assert Projection.merge(None, default) == default

    def test_no_request_and_no_default(self):
        assert Projection.merge(None, None).is_empty

    def test_request_fields_become_allow_list(self):
        merged = Projection.merge(frozenset({"title", "likes"}), None)
        assert merged.include == frozenset({"title", "likes"})
        assert not merged.allows("body")

    def test_explicit_request_inclusion_wins_over_default_exclusion(self):
        """
        Behavior:
                - A field excluded by the binding but named in `fields` is shown.
                - Other default exclusions still apply.
        """
        default = Projection.without("password_hash secret")
        merged = Projection.merge(frozenset({"name", "password_hash"}), default)

        assert merged.allows("password_hash")
        assert merged.allows("name")
        assert "secret" in merged.exclude


class TestExpansionProjection:

    class Secretive:
        pass

    def test_registered_default_applies_without_select(self):
        register_default_projection(self.Secretive, Projection.without("token"))

        projection = expansion_projection(self.Secretive, None)

        assert not projection.allows("token")
        assert projection.allows("name")

    def test_select_overrides_only_named_exclusions(self):
        register_default_projection(self.Secretive, Projection.without("token secret"))

        projection = expansion_projection(self.Secretive, frozenset({"name", "token"}))

        assert projection.allows("token")
        assert not projection.allows("secret")
        assert not projection.allows("id")

    def test_unregistered_model_is_unrestricted(self):
        class Plain:
            pass

        assert default_projection_for(Plain) is None
        assert expansion_projection(Plain, None).is_empty
