from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...core.dependencies import get_context, verify_api_key
from ...core.exceptions import ValidationError
from .schemas import KnowledgeEntryCreate, KnowledgeEntryResponse, KnowledgeEntryUpdate

knowledge_router = APIRouter(
    prefix="/knowledge",
    tags=["Knowledge"],
    dependencies=[Depends(verify_api_key)],
)


@knowledge_router.get("", response_model=List[KnowledgeEntryResponse])
async def list_knowledge(category: Optional[str] = Query(None), context=Depends(get_context)):
    """Active knowledge entries, optionally filtered by category."""
    return await context.knowledge_service.get_knowledge(category)


@knowledge_router.post("", response_model=KnowledgeEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_knowledge(body: KnowledgeEntryCreate, context=Depends(get_context)):
    return await context.knowledge_service.add_knowledge(
        body.category, body.title, body.content, body.priority
    )


@knowledge_router.patch("/{entry_id}", response_model=KnowledgeEntryResponse)
async def update_knowledge(entry_id: str, body: KnowledgeEntryUpdate, context=Depends(get_context)):
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise ValidationError("No fields to update")
    return await context.knowledge_service.update_knowledge(entry_id, **updates)


@knowledge_router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_knowledge(entry_id: str, context=Depends(get_context)):
    await context.knowledge_service.delete_knowledge(entry_id)
