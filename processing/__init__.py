"""
Processing Module
=================

Data processing pipelines for the Nashville housing dataset.

Layers:
- cleaning: Raw table to cleaned table (dedup, type normalization,
  address inference and splitting, duplicate detection)
"""
