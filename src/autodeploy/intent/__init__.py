from .extractor import extract_intent, parse_intent_keywords, parse_intent_response

__all__ = ["extract_intent", "parse_intent_keywords", "parse_intent_response"]
