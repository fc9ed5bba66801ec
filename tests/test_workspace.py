"""
Tests for the in-memory reference workspace.
"""

import pytest
from hypothesis import given, strategies as st

from block_clipboard.workspace import (
    Workspace, ViewportState, VariableMap, BlockDefinition
)


class TestViewportState:
    """Test cases for ViewportState."""

    def test_world_to_screen_conversion(self):
        viewport = ViewportState(zoom=2.0, pan_x=10.0, pan_y=20.0)

        screen_x, screen_y = viewport.world_to_screen(100.0, 200.0)

        # (100 + 10) * 2 = 220, (200 + 20) * 2 = 440
        assert screen_x == 220.0
        assert screen_y == 440.0

    def test_screen_ctm_matches_world_to_screen(self):
        viewport = ViewportState(zoom=1.5, pan_x=5.0, pan_y=-10.0, origin_x=30.0, origin_y=40.0)
        point = viewport.screen_ctm().apply(150.0, 300.0)
        assert (point.x, point.y) == pytest.approx(viewport.world_to_screen(150.0, 300.0))

    def test_metrics(self):
        viewport = ViewportState(zoom=2.0, pan_x=-50.0, pan_y=0.0, width=800, height=600)
        assert viewport.metrics() == {
            'view_left': 50.0, 'view_top': 0.0, 'view_width': 400.0, 'view_height': 300.0,
        }


class TestVariableMap:
    """Test cases for VariableMap."""

    def setup_method(self):
        self.variables = VariableMap()

    def test_create_with_id(self):
        variable = self.variables.create_variable('Health', 'Number', 'v1')
        assert self.variables.get_variable_by_id('v1') is variable

    def test_same_name_same_type_returns_existing(self):
        first = self.variables.create_variable('Health', 'Number')
        assert self.variables.create_variable('Health', 'Number') is first

    def test_same_name_other_type_rejected(self):
        self.variables.create_variable('Health', 'Number')
        with pytest.raises(ValueError):
            self.variables.create_variable('Health', 'String')

    def test_duplicate_id_rejected(self):
        self.variables.create_variable('a', '', 'v1')
        with pytest.raises(ValueError):
            self.variables.create_variable('b', '', 'v1')

    def test_lookup_by_type(self):
        self.variables.create_variable('Health', 'Number')
        assert self.variables.get_variable('Health', 'String') is None


class TestWorkspace:
    """Test cases for Workspace."""

    def setup_method(self):
        self.workspace = Workspace(definitions=[
            BlockDefinition('math_arithmetic', dropdowns={'OP': [('+', 'ADD'), ('-', 'MINUS')]}),
            BlockDefinition('variables_get', variable_fields=('VAR',)),
        ])

    def test_zoom_is_clamped(self):
        self.workspace.set_zoom(50)
        assert self.workspace.scale == 5.0
        self.workspace.set_zoom(0)
        assert self.workspace.scale == 0.1

    def test_field_options(self):
        assert self.workspace.get_field_options('math_arithmetic', 'OP') == [('+', 'ADD'), ('-', 'MINUS')]
        assert self.workspace.get_field_options('unknown', 'OP') is None

    def test_new_block_defaults(self):
        block = self.workspace.new_block('math_arithmetic')
        assert block.fields == {'OP': 'ADD'}
        assert block.get_field('OP').get_options() == [('+', 'ADD'), ('-', 'MINUS')]
        assert block.id not in self.workspace.blocks

    def test_new_block_unknown_kind(self):
        with pytest.raises(KeyError):
            self.workspace.new_block('unknown')

    def test_append_rejects_unknown_variable_without_mutation(self):
        with pytest.raises(ValueError):
            self.workspace.append({
                'type': 'math_arithmetic',
                'inputs': {'A': {'block': {'type': 'variables_get', 'fields': {'VAR': 'ghost'}}}},
            })
        assert self.workspace.blocks == {}
        assert self.workspace.get_top_blocks() == []

    def test_append_assigns_fresh_id_on_collision(self):
        first = self.workspace.append({'type': 'text_print', 'id': 'b1'})
        second = self.workspace.append({'type': 'text_print', 'id': 'b1'})
        assert first.id == 'b1'
        assert second.id != 'b1'

    def test_serialize_round_trip(self):
        variable = self.workspace.create_variable('item', '', 'v1')
        data = {
            'type': 'math_arithmetic', 'id': 'root', 'x': 10, 'y': 20,
            'fields': {'OP': 'MINUS'},
            'inputs': {'A': {'block': {'type': 'variables_get', 'id': 'child',
                                       'fields': {'VAR': variable.to_dict()}}}},
            'next': {'block': {'type': 'text_print', 'id': 'after'}},
        }

        block = self.workspace.append(data)

        assert self.workspace.serialize_block(block) == data

    def test_load_legacy_markup_with_variable(self):
        self.workspace.create_variable('item', '', 'v1')
        blocks = self.workspace.load_legacy_markup(
            '<xml><block type="variables_get" x="5" y="6">'
            '<field name="VAR" id="v1">item</field>'
            '<next><block type="text_print"/></next>'
            '</block></xml>'
        )

        assert len(blocks) == 1
        assert blocks[0].fields['VAR'] == 'v1'
        assert blocks[0].next_block.kind == 'text_print'

    def test_get_state(self):
        self.workspace.add_block('text_print', x=1, y=2)
        state = self.workspace.get_state()
        assert state['block_count'] == 1
        assert state['top_blocks'][0]['type'] == 'text_print'
        assert state['viewport']['zoom'] == 1.0


@given(st.floats(min_value=0.1, max_value=5.0),
       st.floats(min_value=-500, max_value=500),
       st.floats(min_value=-500, max_value=500))
def test_screen_world_round_trip(zoom, pan_x, pan_y):
    """Property test: screen_to_world inverts world_to_screen."""
    viewport = ViewportState(zoom=zoom, pan_x=pan_x, pan_y=pan_y)
    screen_x, screen_y = viewport.world_to_screen(150.0, 300.0)
    world_x, world_y = viewport.screen_to_world(screen_x, screen_y)
    assert abs(world_x - 150.0) < 0.001
    assert abs(world_y - 300.0) < 0.001
