"""Detection layer package for change-to-candidate rules."""

from .candidates import EventTarget, detection_build_candidate
from .catalog import detection_build_default_registry
from .interfaces import DetectionFaultListener, DetectorRule
from .registry import DetectorRegistry
from .rules import (
    CreateRule,
    DeletionRule,
    FieldChangeRule,
    PromotionRule,
    StatusTransitionRule,
    TransferRule,
    ValueMatchRule,
)

__all__ = [
    "DetectorRule",
    "DetectionFaultListener",
    "DetectorRegistry",
    "EventTarget",
    "CreateRule",
    "PromotionRule",
    "TransferRule",
    "StatusTransitionRule",
    "DeletionRule",
    "FieldChangeRule",
    "ValueMatchRule",
    "detection_build_candidate",
    "detection_build_default_registry",
]
