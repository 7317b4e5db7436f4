"""
Tests for the sample light commands.
"""

import pytest

from tchat_core.commands.light_commands import BLUE, GREEN, RED, WHITE, LightCommands


class TestLightCommands:
    """Colour changes from chat"""

    def test_starts_white(self):
        assert LightCommands().color == WHITE

    @pytest.mark.parametrize(
        "method,expected",
        [("handle_red_command", RED), ("handle_green_command", GREEN), ("handle_blue_command", BLUE)],
    )
    def test_fixed_colours(self, method, expected):
        light = LightCommands()

        getattr(light, method)("viewer", [])

        assert light.color == expected

    def test_color_sets_rgb(self):
        light = LightCommands()

        light.handle_color_command("viewer", ["0.25", "0.5", "1"])

        assert light.color == (0.25, 0.5, 1.0)

    def test_color_values_clamped(self):
        light = LightCommands()

        light.handle_color_command("viewer", ["-3", "2.5", "0.5"])

        assert light.color == (0.0, 1.0, 0.5)

    def test_extra_arguments_ignored(self):
        light = LightCommands()

        light.handle_color_command("viewer", ["0", "0", "0", "please"])

        assert light.color == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("arguments", [[], ["1", "0"], ["1", "zero", "0"], ["1", "", "0"]])
    def test_bad_input_leaves_colour_unchanged(self, arguments):
        light = LightCommands(color=RED)

        light.handle_color_command("viewer", arguments)

        assert light.color == RED
