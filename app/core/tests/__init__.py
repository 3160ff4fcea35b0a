"""Tests for core infrastructure shared by every app."""
