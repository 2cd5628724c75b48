"""Dispatch core — partition batch registry, batch manager and change consumer."""
