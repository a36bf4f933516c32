"""Conversation feature: topics and their messages.

Holds the entities, repositories and the service every other feature goes
through to read or write conversations, so ownership is checked in one place.
"""
