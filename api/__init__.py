"""Kenya criminal legal agent API.

This package contains the FastAPI application and the intake pipeline
behind it.

Main components:
- main.py: FastAPI application with endpoints
- models.py: Pydantic models for requests and responses
- classifier.py: Rule-based query, document and intent classification
- agents/: Reasoning, research, case law and document responders
- orchestrators/: Integration coordinator and background task runner
- conversation.py: WhatsApp conversation handling
- whatsapp.py: WhatsApp Business API integration
"""

# Avoid importing the FastAPI app at package import time.
__all__ = []
