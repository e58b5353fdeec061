"""
Simorgh review scheduler.

Spaced-repetition scheduling, due-queue selection and learner progress
tracking for vocabulary, phrases and flashcards.
"""

__version__ = "1.0.0"
