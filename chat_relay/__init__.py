"""Serverless relay between a chat client and the Gemini generateContent API."""

__version__ = "0.1.0"
