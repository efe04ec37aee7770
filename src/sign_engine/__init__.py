"""SignEngine - teach and recognize custom hand signs from landmarks."""

__version__ = "0.1.0"

from sign_engine.errors import SignEngineError, InvalidSample, PersistenceError, CorruptStorage
from sign_engine.geometry import Point, distance
from sign_engine.landmarks import LandmarkSample
from sign_engine.patterns import GesturePattern
from sign_engine.storage import StorageSlot, JsonFileSlot, MemorySlot
from sign_engine.store import GestureStore
from sign_engine.recognizer import GestureRecognizer, recognize
from sign_engine.trainer import TrainingSession
from sign_engine.config import EngineConfig
from sign_engine.detector import LandmarkSource, HandDetector
from sign_engine.pipeline import SignPipeline, RecognitionEvent, Mode
