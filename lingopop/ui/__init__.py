"""Terminal renderers for the notebook and flashcards."""
