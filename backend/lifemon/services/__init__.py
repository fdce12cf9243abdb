"""
LifeMon Backend — Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - ProfileService: profile reads, the profile update transaction, avatar paths
    - AvatarStorage:  avatar upload validation, storage and cleanup

Services take the session as an argument and hold no per-request state, so
each is a module-level singleton.
"""
