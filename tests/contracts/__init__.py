"""Tests for contracts package.

Contract types are plain data: these tests pin their validation and derived
properties, independent of any store.
"""
