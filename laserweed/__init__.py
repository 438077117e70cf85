# laserweed - Source Package
"""
laserweed: plant detection and laser aim classification for a weeding robot.

This package provides the per-frame vision core for:
- Crop / weed segmentation and species classification
- Laser line detection and aim point estimation
- Classification of the aim point as on weed, on crop, or on ground
"""

__version__ = "0.1.0"
