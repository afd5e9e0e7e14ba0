"""Configuration loading"""
