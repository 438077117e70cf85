# laserweed Core Module
"""
Core per-frame processing for laserweed.

Contains:
- Plant records and laser behaviour states
- Species classification of plant blobs
- Plant detection pipeline
- Laser line detection and intersection solving
- Aim point hit testing
- Per-frame processing record
"""

from laserweed.core.frame_analysis import FrameAnalysis
from laserweed.core.jet_position_checker import JetPositionChecker
from laserweed.core.line_detector import LineDetector, LineSegment, NoIntersectionError
from laserweed.core.plant import LaserBehavior, Plant, Rect, Species, behavior_for_species
from laserweed.core.plant_detector import PlantDetection, PlantDetector
from laserweed.core.species_classifier import BlobFeatures, SpeciesClassifier

__all__ = [
    "BlobFeatures",
    "FrameAnalysis",
    "JetPositionChecker",
    "LaserBehavior",
    "LineDetector",
    "LineSegment",
    "NoIntersectionError",
    "Plant",
    "PlantDetection",
    "PlantDetector",
    "Rect",
    "Species",
    "SpeciesClassifier",
    "behavior_for_species",
]
