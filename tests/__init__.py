"""Test package for Mondrian Match.

This package contains unit tests for the partition tree, target generator,
similarity scorer and game state machine, plus headless simulations and UI
smoke tests.  The UI tests use pygame's dummy video/audio drivers to avoid
opening real windows.  To run these tests, execute ``pytest`` from the project
root.
"""
