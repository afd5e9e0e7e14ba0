"""Domain models"""
