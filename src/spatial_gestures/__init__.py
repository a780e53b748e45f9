"""SpatialGestures - 3D motion gesture recognition from position streams."""

__version__ = "0.1.0"

from spatial_gestures.buffer import Sample, SampleBuffer
from spatial_gestures.shapes import GestureMatch, GestureShape
from spatial_gestures.circular import CircularShape
from spatial_gestures.drawn import DrawnShape
from spatial_gestures.linear import LinearShape
from spatial_gestures.templates import DrawnTemplate, builtin_templates, template_from_positions
from spatial_gestures.detector import DetectorConfig, GestureDetector
from spatial_gestures.sequences import GestureSequence, SequenceDetector, SequenceEvent, SequenceStep, SequenceTracker
from spatial_gestures.config import EngineConfig, load_config, save_config
from spatial_gestures.recorder import MotionRecorder, MotionPlayer
from spatial_gestures.motion import CircularMover, trace_path
