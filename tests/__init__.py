"""Test package for the Speed Motioner trainer.

Core tests drive the matcher, scoring and session controller with a fake
clock. The smoke tests run the pygame loop headlessly using the dummy
video driver. Run ``pytest`` from the project root.
"""
