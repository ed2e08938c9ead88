"""Wire models and streaming translation for LLM chat protocols."""
