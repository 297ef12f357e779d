"""Ranking engine for FeedRank.

This module contains the metric extractors, the weighted scorer, the
intent rankers, the preference tracker, the feed composer and the
pagination controller. Everything except the service layer is synchronous
and free of I/O.
"""
