"""
Conversation flow.
"""

from src.core.conversation.state_machine import ConversationResponse, ConversationStateMachine

__all__ = ["ConversationResponse", "ConversationStateMachine"]
