"""CLI package for Libris"""
from .main import cli

__all__ = ['cli']
