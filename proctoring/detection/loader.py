"""
Model Loader - acquires the object classifier with one degraded fallback
"""

import logging
import os
from typing import Callable

from ..config import Settings
from ..errors import ModelUnavailableError
from .objects import ObjectClassifier, YoloObjectClassifier

logger = logging.getLogger(__name__)


def load_object_classifier(settings: Settings) -> ObjectClassifier:
    """
    Load the configured YOLO weights, falling back to the stock model once.

    Raises:
        ModelUnavailableError: if neither model can be loaded
    """
    try:
        from ultralytics import YOLO  # type: ignore
    except ImportError as e:
        raise ModelUnavailableError("ultralytics is not installed") from e

    path = settings.object_model_path
    if path and os.path.exists(path):
        try:
            logger.info(f"Loading object model from: {path}")
            return YoloObjectClassifier(YOLO(path), settings.object_confidence, source="primary")
        except Exception as e:
            logger.warning(f"Failed to load object model {path}: {e}")
    else:
        logger.warning(f"Object model not found at {path}")

    try:
        logger.warning(f"Using {settings.object_fallback_model} as fallback object model")
        model = YOLO(settings.object_fallback_model)
    except Exception as e:
        raise ModelUnavailableError(f"Fallback object model failed: {e}") from e

    return YoloObjectClassifier(model, settings.object_confidence, source="fallback")


def classifier_loader(settings: Settings) -> Callable[[], ObjectClassifier]:
    return lambda: load_object_classifier(settings)
