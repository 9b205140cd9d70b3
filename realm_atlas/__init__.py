"""Realm Atlas: region map API."""
