from typing import NewType

RemoteId = NewType("RemoteId", str)
"""Identifier assigned by the forum itself. Used for every outbound request"""

LocalId = NewType("LocalId", int)
"""Surrogate key assigned by the database. Used for every lookup and foreign key"""
