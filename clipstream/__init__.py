"""Clipstream: ranked short-video feed and realtime direct messaging."""
