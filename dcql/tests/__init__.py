"""DCQL engine tests."""
