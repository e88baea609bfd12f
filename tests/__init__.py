"""Test package for Platform_CaC."""
