"""Tests for the Xiaomi Mi Home integration."""
