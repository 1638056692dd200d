"""
Configuration Module
------------------
Reads runtime settings from the environment (and an optional .env file).
"""
