"""
AutoRig

Image segmentation into named layers and rule-based skeletal rig
generation, served over HTTP.
"""

__version__ = "2.0.0"
