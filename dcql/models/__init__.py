"""DCQL query models."""
