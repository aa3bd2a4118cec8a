"""Room catalog API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from reservation_portal.database import get_db
from reservation_portal.models.reservation import Reservation
from reservation_portal.models.room import Room
from reservation_portal.schemas.room import RoomCreate, RoomUpdate, RoomOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_room_or_404(db: Session, room_id: str) -> Room:
    room = db.query(Room).filter(Room.room_id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.post("/", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(payload: RoomCreate, db: Session = Depends(get_db)):
    """Add a room to the catalog."""
    data = payload.model_dump()
    data["facilities"] = [f.strip() for f in payload.facilities if f.strip()]
    room = Room(**data, version=1)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Created room %s (%s, capacity %d)", room.room_id, room.name, room.capacity)
    return room


@router.get("/", response_model=list[RoomOut])
def list_rooms(db: Session = Depends(get_db)):
    """List all rooms."""
    return db.query(Room).order_by(Room.name).all()


@router.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: str, db: Session = Depends(get_db)):
    """Fetch a single room by ID."""
    return _get_room_or_404(db, room_id)


@router.patch("/{room_id}", response_model=RoomOut)
def update_room(room_id: str, payload: RoomUpdate, db: Session = Depends(get_db)):
    """Edit room details (partial update)."""
    room = _get_room_or_404(db, room_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "facilities" and value is not None:
            value = [f.strip() for f in value if f.strip()]
        setattr(room, field, value)
    db.commit()
    db.refresh(room)
    logger.info("Updated room %s", room_id)
    return room


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(room_id: str, db: Session = Depends(get_db)):
    """Remove a room. Refused while any reservation (of any status) refers to it."""
    room = _get_room_or_404(db, room_id)
    referenced = db.query(Reservation).filter(Reservation.room_id == room_id).count()
    if referenced:
        logger.warning("Refused to delete room %s: %d reservation(s) refer to it", room_id, referenced)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Room is referenced by {referenced} reservation(s); reservations are never deleted",
        )
    db.delete(room)
    db.commit()
    logger.info("Deleted room %s", room_id)
