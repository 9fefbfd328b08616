"""Test package for the instrument quiz.

The core tests (catalog, matching, sequencing, playback guard, session) run
without pygame by driving the session with a fake clock and a fake audio
backend. The smoke tests run the pygame shell headlessly using SDL's dummy
video and audio drivers. To run them, execute ``pytest`` from the project root.
"""
