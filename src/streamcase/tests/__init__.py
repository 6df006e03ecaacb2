"""Tests for streamcase."""
