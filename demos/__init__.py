"""Runnable localization demos."""
