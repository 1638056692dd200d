"""
Data Models Module
----------------
Contains Pydantic models for data validation and serialization.
Defines coordinate requests, address and usage responses, and the usage record.
"""
