"""
Unit tests for models module.

Tests decoding of bridge collections into Resource and Scene values.
"""

from hue_mixer.models import ResourceKind, decode_groups, decode_lights, decode_scenes


class TestDecodeLights:
    """Tests for decode_lights"""

    def test_decodes_state_fields(self):
        """Test that state fields are copied onto the resource"""
        lights = decode_lights(
            {"1": {"name": "Desk", "state": {"on": True, "bri": 127, "hue": 8418, "sat": 140, "effect": "none"}}},
        )

        light = lights["1"]
        assert light.id == "1"
        assert light.kind is ResourceKind.LIGHT
        assert light.name == "Desk"
        assert light.on is True
        assert light.bri == 127
        assert light.hue == 8418
        assert light.sat == 140

    def test_missing_fields_use_defaults(self):
        """Test that bri defaults to 254 and hue to 0 when absent"""
        lights = decode_lights({"3": {"name": "Plug", "state": {"on": False}}})

        assert lights["3"].bri == 254
        assert lights["3"].hue == 0
        assert lights["3"].on is False

    def test_null_fields_use_defaults(self):
        """Test that null channels reported by white-only bulbs get defaults"""
        lights = decode_lights({"4": {"name": "White", "state": {"on": True, "bri": None, "hue": None}}})

        assert lights["4"].bri == 254
        assert lights["4"].hue == 0

    def test_missing_state_object(self):
        """Test that a light without a state object still decodes"""
        lights = decode_lights({"5": {"name": "Odd"}})

        assert lights["5"].bri == 254
        assert lights["5"].on is False

    def test_malformed_entry_is_skipped(self):
        """Test that one bad light does not drop the others"""
        lights = decode_lights(
            {
                "1": {"name": "Good", "state": {"bri": 10}},
                "2": {"name": "Bad", "state": {"bri": "bright"}},
                "3": "not-an-object",
            },
        )

        assert list(lights) == ["1"]


class TestDecodeGroups:
    """Tests for decode_groups"""

    def test_decodes_action_and_members(self):
        """Test that group action fields and member ids are decoded"""
        groups = decode_groups(
            {"7": {"name": "Kitchen", "action": {"on": True, "bri": 200, "hue": 1000}, "lights": [1, "2"]}},
        )

        group = groups["7"]
        assert group.kind is ResourceKind.GROUP
        assert group.bri == 200
        assert group.hue == 1000
        assert group.lights == ("1", "2")

    def test_group_without_action(self):
        """Test defaults for a group missing its action"""
        groups = decode_groups({"8": {"name": "Empty", "lights": []}})

        assert groups["8"].bri == 254
        assert groups["8"].lights == ()


class TestDecodeScenes:
    """Tests for decode_scenes"""

    def test_decodes_group_reference(self):
        """Test that the owning group id is kept as a string"""
        scenes = decode_scenes({"abc": {"name": "Relax", "group": 7, "lights": [1, 2]}})

        assert scenes["abc"].group == "7"
        assert scenes["abc"].name == "Relax"
        assert scenes["abc"].lights == ("1", "2")

    def test_legacy_scene_without_group(self):
        """Test that a scene with no group decodes with group None"""
        scenes = decode_scenes({"old": {"name": "Legacy", "lights": ["1"]}})

        assert scenes["old"].group is None
