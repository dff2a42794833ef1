"""
FastAPI dependency injection for workflows.

Workflow instances are created once at startup and handed to endpoints
through Depends(). Tests replace them with app.dependency_overrides.
"""

from fastapi import HTTPException

# Workflow instances - set during app startup
_assessment_workflow = None
_chat_workflow = None
_negotiation_workflow = None
_translation_workflow = None


def set_workflows(assessment=None, chat=None, negotiation=None, translation=None) -> None:
    """Set the global workflow instances."""
    global _assessment_workflow, _chat_workflow, _negotiation_workflow, _translation_workflow
    _assessment_workflow = assessment
    _chat_workflow = chat
    _negotiation_workflow = negotiation
    _translation_workflow = translation


def _require(workflow, name: str):
    if workflow is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "ServiceUnavailable",
                "message": f"{name} workflow not initialized"
            }
        )
    return workflow


def get_assessment_workflow():
    """
    FastAPI dependency for the assessment workflow.

    Raises:
        HTTPException: 503 if the workflow is not initialized
    """
    return _require(_assessment_workflow, "Assessment")


def get_chat_workflow():
    """FastAPI dependency for the chat workflow."""
    return _require(_chat_workflow, "Chat")


def get_negotiation_workflow():
    """FastAPI dependency for the negotiation workflow."""
    return _require(_negotiation_workflow, "Negotiation")


def get_translation_workflow():
    """FastAPI dependency for the translation workflow."""
    return _require(_translation_workflow, "Translation")
