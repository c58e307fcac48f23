"""LingoPop: an AI pocket dictionary with a personal notebook."""
