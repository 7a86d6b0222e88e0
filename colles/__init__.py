"""Colle schedules: dataset builder, name search and program viewer."""
