"""Tests for YAML configuration loading and building."""

import pytest
import yaml

from spatial_gestures.circular import CircularShape
from spatial_gestures.config import EngineConfig, load_config, save_config, shape_from_dict
from spatial_gestures.detector import DetectorConfig
from spatial_gestures.drawn import DrawnShape
from spatial_gestures.linear import LinearShape
from spatial_gestures.sequences import GestureSequence, SequenceStep
from spatial_gestures.templates import DrawnTemplate, builtin_templates


def sample_config():
    return EngineConfig(
        detector=DetectorConfig(sample_interval=0.02, max_sample_age=2.0, log_detections=False),
        shapes=[
            CircularShape(shape_id="circle", min_radius=0.15, required_normal=(0.0, 0.0, 1.0)),
            LinearShape(shape_id="swipe_right", expected_direction=(1.0, 0.0, 0.0)),
            DrawnShape(shape_id="tick", template=builtin_templates()["check"], max_average_error=0.1),
        ],
        sequences=[
            GestureSequence(
                name="summon",
                steps=(SequenceStep("spin", "circle"), SequenceStep("throw", "swipe_right")),
                max_step_gap=1.5,
            ),
        ],
    )


class TestYamlRoundTrip:
    def test_save_and_load(self, tmp_path):
        config = sample_config()
        path = tmp_path / "gestures.yaml"
        config.to_yaml(path)

        loaded = EngineConfig.from_yaml(path)
        assert loaded.detector == config.detector
        assert loaded.shapes == config.shapes
        assert loaded.sequences == config.sequences

    def test_file_is_readable_yaml(self, tmp_path):
        path = tmp_path / "gestures.yaml"
        sample_config().to_yaml(path)

        data = yaml.safe_load(path.read_text())
        assert [s["type"] for s in data["shapes"]] == ["circular", "linear", "drawn"]
        assert data["sequences"][0]["steps"][1] == {"label": "throw", "shape": "swipe_right"}

    def test_module_helpers(self, tmp_path):
        path = tmp_path / "nested" / "gestures.yaml"
        save_config(sample_config(), path)
        assert load_config(path).shapes == sample_config().shapes

    def test_sequence_without_name(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("sequences:\n  - steps: []\n")
        with pytest.raises(KeyError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = EngineConfig.from_yaml(path)
        assert config.shapes == []
        assert config.detector == DetectorConfig()


class TestTemplateReferences:
    def test_builtin_reference(self):
        shape = shape_from_dict({"type": "drawn", "shape_id": "tri", "template": "builtin:triangle"})
        assert shape.template == builtin_templates()["triangle"]

    def test_unknown_builtin(self):
        with pytest.raises(ValueError):
            shape_from_dict({"type": "drawn", "template": "builtin:hexagon"})

    def test_path_relative_to_config(self, tmp_path):
        star = DrawnTemplate(points=((0, 1), (0.5, -1), (-1, 0.3), (1, 0.3), (-0.5, -1)), name="star")
        star.save(tmp_path / "templates" / "star.json")

        path = tmp_path / "gestures.yaml"
        path.write_text(
            "shapes:\n"
            "  - type: drawn\n"
            "    shape_id: star\n"
            "    template: templates/star.json\n"
            "    max_average_error: 0.1\n"
        )

        shape = EngineConfig.from_yaml(path).shapes[0]
        assert shape.shape_id == "star"
        assert shape.template == star
        assert shape.max_average_error == 0.1


class TestShapeFromDict:
    def test_unknown_type(self):
        with pytest.raises(ValueError):
            shape_from_dict({"type": "spiral"})

    def test_unknown_keys_ignored(self):
        shape = shape_from_dict({"type": "linear", "shape_id": "s", "colour": "red"})
        assert shape == LinearShape(shape_id="s")

    def test_template_as_point_list(self, tmp_path):
        path = tmp_path / "gestures.yaml"
        path.write_text(
            "shapes:\n"
            "  - type: drawn\n"
            "    shape_id: wedge\n"
            "    template: [[-1, -1], [1, -1], [0, 1]]\n"
        )

        shape = EngineConfig.from_yaml(path).shapes[0]
        assert isinstance(shape.template, DrawnTemplate)
        assert shape.template.points == ((-1.0, -1.0), (1.0, -1.0), (0.0, 1.0))
        assert shape.template.closed_loop

    def test_template_of_wrong_type(self):
        with pytest.raises(ValueError):
            shape_from_dict({"type": "drawn", "shape_id": "bad", "template": 42})


class TestBuild:
    def test_build_wires_sequences(self):
        detector, sequences = sample_config().build()

        assert [s.shape_id for s in detector.shapes] == ["circle", "swipe_right", "tick"]
        assert [s.name for s in sequences.sequences] == ["summon"]
        assert detector.config.sample_interval == 0.02

    def test_unknown_step_shape_warns(self, caplog):
        config = EngineConfig(
            shapes=[CircularShape()],
            sequences=[GestureSequence(name="lost", steps=(SequenceStep("x", "nowhere"),))],
        )
        with caplog.at_level("WARNING", logger="spatial_gestures.config"):
            config.build()
        assert "nowhere" in caplog.text
