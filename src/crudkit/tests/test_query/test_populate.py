import logging

import pytest

from crudkit.query.populate import Expansion, PopulateNode, as_nodes, resolve_population


class TestResolvePopulation:

    @pytest.mark.parametrize("directive", [None, [], "", ()])
    def test_empty_directive_expands_nothing(self, directive):
        assert resolve_population(directive) == ()

    def test_single_node_with_field_selection(self):
        expansions = resolve_population({"path": "author", "select": "name email"})
        assert expansions == (Expansion("author", fields=frozenset({"name", "email"})),)

    def test_two_node_sequence_with_nested_parent(self):
        """
        Behavior:
                - [{author}, {category -> parent}] gives two sibling expansions; only
                  category carries one nested level.
        """
        expansions = resolve_population([
            {"path": "author"},
            {"path": "category", "populate": {"path": "parent"}},
        ])

        assert expansions == (
            Expansion("author"),
            Expansion("category", children=(Expansion("parent"),)),
        )

    def test_third_level_is_dropped_not_rejected(self, caplog):
        caplog.set_level(logging.DEBUG, logger="crudkit.query.populate")

        expansions = resolve_population({
            "path": "category",
            "populate": {"path": "parent", "populate": {"path": "parent"}},
        })

        assert expansions == (Expansion("category", children=(Expansion("parent"),)),)
        assert any(r.message == "populate.depth_capped" for r in caplog.records)

    def test_string_shorthand_names_several_siblings(self):
        assert resolve_population("author category") == (Expansion("author"), Expansion("category"))

    def test_nodes_and_nested_sequences(self):
        directive = PopulateNode("category", populate=[PopulateNode("parent"), "children"])
        expansions = resolve_population(directive)
        assert expansions[0].children == (Expansion("parent"), Expansion("children"))

    def test_empty_nested_paths_are_dropped(self):
        directive = {"path": "category", "populate": ["", {"path": " "}, "parent"]}
        assert resolve_population(directive)[0].children == (Expansion("parent"),)

    def test_unknown_relation_is_not_checked_here(self):
        # the resolver is pure translation; the store rejects unknown names later
        assert resolve_population("does_not_exist") == (Expansion("does_not_exist"),)


def test_as_nodes_rejects_unsupported_values():
    with pytest.raises(TypeError):
        as_nodes([42])


def test_mapping_without_path_is_rejected():
    with pytest.raises(TypeError, match="no path"):
        resolve_population({"select": "name"})
