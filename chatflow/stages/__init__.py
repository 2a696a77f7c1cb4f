from .base import BaseStage, CallStage, Stage, StreamStage
from .chain import StageChain
from .logging_stage import LoggingStage
from .model import ModelCallStage, ModelStreamStage

__all__ = [
    "Stage",
    "CallStage",
    "StreamStage",
    "BaseStage",
    "StageChain",
    "LoggingStage",
    "ModelCallStage",
    "ModelStreamStage",
]
