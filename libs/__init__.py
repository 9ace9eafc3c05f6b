"""Shared libraries for the Kenya legal agent.

This package contains reusable components:
- common: configuration
- caching: cache store backends and the Redis client
- firebase: Firebase Admin and Firestore client setup
- firestore: collection access functions
- models: Firestore document models
"""
