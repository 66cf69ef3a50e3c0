"""
TeacherDash Backend Package
===========================

Flask-based backend for the teacher productivity dashboard: calendar, tasks,
bellringers, lesson plans, standards coverage and the substitute dashboard.

Structure:
- routes/: API route blueprints
- services/: Business logic services (AI generation, coverage, resolvers)
- data/: Static data files (standards, calendar seed, prompt bank)
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
