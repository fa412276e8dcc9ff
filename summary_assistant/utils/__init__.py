from .llm_config import GenerativeTextClient, get_generative_client

__all__ = ["GenerativeTextClient", "get_generative_client"]
