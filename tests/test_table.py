"""Tests for compile_description, StateTable and CompilerConfig."""
import logging

import pytest

from stately import (
    CompilerConfig,
    Description,
    DuplicateEventError,
    MalformedDescriptionError,
    StateTable,
    Transition,
    compile_description,
    destination_of,
    transitions_to,
)


def noop(machine):
    return None


def light_switch():
    return Description(
        starting_state="off",
        states={
            "off": {"on": {"flip": noop}, "off": {"poke": noop}},
            "on": {"off": {"flip": noop}},
        },
    )


class TestCompileDescription:
    """Test cases for compile_description."""

    def test_handlers_per_state(self):
        """Each state holds exactly the events declared for it."""
        # Act
        table = compile_description(light_switch())

        # Assert
        assert table.states == ("off", "on")
        assert set(table.handlers["off"]) == {"flip", "poke"}
        assert set(table.handlers["on"]) == {"flip"}
        assert table.starting_state == "off"

    def test_handlers_wrapped_with_bucket_destination(self):
        """Every compiled handler carries its bucket's destination, self-loops included."""
        table = compile_description(light_switch())
        assert destination_of(table.handlers["off"]["flip"]) == "on"
        assert destination_of(table.handlers["off"]["poke"]) == "off"
        assert destination_of(table.handlers["on"]["flip"]) == "off"

    def test_transitions_retained_in_declaration_order(self):
        """The table keeps (source, event, destination) triples as data."""
        table = compile_description(light_switch())
        assert table.transitions == (
            Transition("off", "flip", "on"),
            Transition("off", "poke", "off"),
            Transition("on", "flip", "off"),
        )

    def test_events_union_ordered(self):
        """events lists every event once, by first declaration."""
        table = compile_description(light_switch())
        assert table.events == ("flip", "poke")

    def test_events_for_and_destination(self):
        """Per-state helpers read the compiled table."""
        table = compile_description(light_switch())
        assert table.events_for("on") == ("flip",)
        assert table.destination("off", "flip") == "on"
        with pytest.raises(KeyError):
            table.destination("on", "poke")

    def test_table_is_read_only(self):
        """Compiled mappings cannot be mutated."""
        table = compile_description(light_switch())
        with pytest.raises(TypeError):
            table.handlers["off"]["flip"] = noop
        with pytest.raises(TypeError):
            table.handlers["new"] = {}
        with pytest.raises(AttributeError):
            table.starting_state = "on"

    def test_properties_copied_into_table(self):
        """Later edits to the description do not leak into a compiled table."""
        # Arrange
        description = light_switch()
        description.properties["watts"] = 60

        # Act
        table = compile_description(description)
        description.properties["watts"] = 100

        # Assert
        assert table.properties["watts"] == 60

    def test_prewrapped_handler_kept(self):
        """A handler already wrapped for the same destination is not wrapped twice."""
        # Arrange
        flip = transitions_to("on", noop)
        description = Description(
            starting_state="off",
            states={"off": {"on": {"flip": flip}}, "on": {}},
        )

        # Act
        table = compile_description(description)

        # Assert
        assert table.handlers["off"]["flip"] is flip


class TestMalformedDescriptions:
    """Test cases for descriptions that fail to compile."""

    def test_undeclared_destination(self):
        """A bucket targeting an undeclared state fails to compile."""
        description = Description(
            starting_state="open",
            states={"open": {"frozen": {"freeze": noop}}},
        )
        with pytest.raises(MalformedDescriptionError, match="frozen") as exc_info:
            compile_description(description)
        assert exc_info.value.state == "open"

    def test_duplicate_event_across_buckets(self):
        """One event in two destination buckets of a state is a DuplicateEventError."""
        # Arrange
        description = Description(
            starting_state="a",
            states={
                "a": {"a": {"go": noop}, "b": {"go": noop}},
                "b": {},
            },
        )

        # Act & Assert
        with pytest.raises(DuplicateEventError) as exc_info:
            compile_description(description)
        error = exc_info.value
        assert error.state == "a"
        assert error.event == "go"
        assert error.destinations == ("a", "b")
        assert isinstance(error, MalformedDescriptionError)

    def test_same_event_in_different_states_allowed(self):
        """Event names only need to be unique within one state."""
        table = compile_description(light_switch())
        assert table.destination("on", "flip") == "off"

    def test_undeclared_starting_state(self):
        """The starting state must be declared."""
        description = Description(starting_state="nowhere", states={"a": {}})
        with pytest.raises(MalformedDescriptionError, match="nowhere"):
            compile_description(description)

    def test_no_states(self):
        """An empty description is rejected."""
        with pytest.raises(MalformedDescriptionError, match="no states"):
            compile_description(Description(starting_state="a", states={}))

    @pytest.mark.parametrize("name", ["_private", "not valid", "class", "", "2fast"])
    def test_bad_event_names(self, name):
        """Event names must be public, non-keyword identifiers."""
        description = Description(starting_state="a", states={"a": {"a": {name: noop}}})
        with pytest.raises(MalformedDescriptionError):
            compile_description(description)

    def test_non_callable_handler(self):
        """Handlers must be callable."""
        description = Description(starting_state="a", states={"a": {"a": {"go": 5}}})
        with pytest.raises(MalformedDescriptionError, match="not callable"):
            compile_description(description)

    def test_property_named_like_event(self):
        """A property cannot shadow an event."""
        description = light_switch()
        description.properties["flip"] = True
        with pytest.raises(MalformedDescriptionError, match="flip"):
            compile_description(description)

    def test_private_property(self):
        """Underscore-prefixed properties would collide with machine internals."""
        description = light_switch()
        description.properties["_state"] = "on"
        with pytest.raises(MalformedDescriptionError):
            compile_description(description)

    def test_prewrapped_handler_with_other_destination(self):
        """A handler wrapped for a different destination than its bucket is rejected."""
        description = Description(
            starting_state="off",
            states={"off": {"on": {"flip": transitions_to("off", noop)}}, "on": {}},
        )
        with pytest.raises(MalformedDescriptionError, match="already transitions"):
            compile_description(description)


class TestCompilerConfig:
    """Test cases for CompilerConfig options."""

    def _with_island(self):
        return Description(
            starting_state="a",
            states={"a": {"a": {"stay": noop}}, "island": {"a": {"leave": noop}}},
        )

    def test_defaults(self):
        """Default config is lenient."""
        config = CompilerConfig()
        assert config.require_reachable is False
        assert config.allow_terminal is True
        assert config.warn_unreachable is True

    def test_config_is_frozen(self):
        """CompilerConfig is immutable."""
        config = CompilerConfig()
        with pytest.raises(AttributeError):
            config.allow_terminal = False

    def test_unreachable_state_warns(self, caplog):
        """Unreachable states are logged as warnings by default."""
        with caplog.at_level(logging.WARNING, logger="stately"):
            compile_description(self._with_island())
        assert "island" in caplog.text

    def test_unreachable_warning_can_be_silenced(self, caplog):
        """warn_unreachable=False compiles quietly."""
        with caplog.at_level(logging.WARNING, logger="stately"):
            compile_description(self._with_island(), CompilerConfig(warn_unreachable=False))
        assert caplog.records == []

    def test_require_reachable(self):
        """require_reachable turns unreachable states into errors."""
        with pytest.raises(MalformedDescriptionError, match="island") as exc_info:
            compile_description(self._with_island(), CompilerConfig(require_reachable=True))
        assert exc_info.value.state == "island"

    def test_terminal_states_rejected_when_disallowed(self):
        """allow_terminal=False rejects states without outgoing events."""
        description = Description(
            starting_state="open", states={"open": {"closed": {"close": noop}}, "closed": {}},
        )
        compile_description(description)
        with pytest.raises(MalformedDescriptionError, match="closed"):
            compile_description(description, CompilerConfig(allow_terminal=False))

    def test_compile_logs_debug_summary(self, caplog):
        """A debug line summarises each compiled table."""
        with caplog.at_level(logging.DEBUG, logger="stately"):
            compile_description(light_switch())
        assert "2 states and 3 transitions" in caplog.text


class TestFromHandlers:
    """Test cases for StateTable.from_handlers."""

    def test_hand_authored_table(self):
        """Wrapped handlers declare destinations; plain ones are self-loops."""
        # Arrange
        handlers = {
            "off": {"flip": transitions_to("on", noop), "poke": noop},
            "on": {"flip": transitions_to("off", noop)},
        }

        # Act
        table = StateTable.from_handlers(handlers, "off")

        # Assert
        assert table.transitions == (
            Transition("off", "flip", "on"),
            Transition("off", "poke", "off"),
            Transition("on", "flip", "off"),
        )
        assert table.handlers["off"]["poke"] is noop

    def test_hand_authored_undeclared_destination(self):
        """A wrapped handler pointing outside the table is rejected."""
        handlers = {"off": {"flip": transitions_to("broken", noop)}}
        with pytest.raises(MalformedDescriptionError, match="broken"):
            StateTable.from_handlers(handlers, "off")

    def test_empty_destination_never_becomes_self_loop(self):
        """An empty destination is rejected instead of being indexed as a self-loop."""
        with pytest.raises(MalformedDescriptionError, match="non-empty"):
            StateTable.from_handlers({"a": {"go": transitions_to("", noop)}, "b": {}}, "a")

    def test_index_matches_runtime_destination(self):
        """The indexed destination is the one the wrapped handler moves to."""
        # Arrange
        go = transitions_to("b", noop)

        # Act
        table = StateTable.from_handlers({"a": {"go": go}, "b": {}}, "a")

        # Assert
        assert table.destination("a", "go") == destination_of(go) == "b"

    def test_hand_authored_properties_checked(self):
        """Properties go through the same checks as compiled descriptions."""
        handlers = {"off": {"flip": noop}}
        with pytest.raises(MalformedDescriptionError):
            StateTable.from_handlers(handlers, "off", properties={"flip": 1})
