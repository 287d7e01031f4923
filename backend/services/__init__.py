"""
Services module for ResellrAI listing backend
"""
from .text_generation import TextGenerationService, TextGenerationError

__all__ = ['TextGenerationService', 'TextGenerationError']
