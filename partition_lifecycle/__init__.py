"""Partition lifecycle management for time-partitioned PostgreSQL tables."""
