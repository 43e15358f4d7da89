"""Batch job layer.

This package models map/combine/reduce jobs over matrix tables, runs
them through a job runner, and orchestrates norm, copy and transpose
jobs including scratch output handling.
"""
