"""FastAPI application module for FeedRank.

This module contains the FastAPI application, route handlers, and API
endpoints for composing feeds, recording preference events and inspecting
rankings.
"""
