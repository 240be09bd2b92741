from fastapi import APIRouter, Depends, status

from db.database import get_db
from models.chunk import Chunk, ChunkCreate
from utils.progress import create_chunk, get_chunk

router = APIRouter()

@router.post("/", response_model=Chunk, status_code=status.HTTP_201_CREATED)
async def add_chunk(payload: ChunkCreate, conn = Depends(get_db)):
    """Add a chunk to the catalogue."""
    return create_chunk(conn, payload)

@router.get("/{chunk_id}", response_model=Chunk)
async def read_chunk(chunk_id: str, conn = Depends(get_db)):
    return get_chunk(conn, chunk_id)
