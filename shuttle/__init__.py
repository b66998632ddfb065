"""Shuttle booking marketplace API"""
