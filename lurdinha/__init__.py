"""Lurdinha party game server: rooms, rounds and majority voting over Redis."""
