"""Typed models, secret resolution and a serving client for FeatureStore resources.

Manifest models live in ``resources/``, the online feature server client in
``serving/``, and the command-line entry point in ``cli.py``.
"""
