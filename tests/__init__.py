"""Tests for the Farm Irrigation integration."""
