from sqlalchemy import Column, Integer, Time, UniqueConstraint, CheckConstraint

from ..core.database import Base

class TimeSlot(Base):
    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("start_time", "end_time", name="uq_time_slots_start_end"),
        CheckConstraint("start_time < end_time", name="ck_time_slots_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    def __repr__(self):
        return f"<TimeSlot(id={self.id}, {self.start_time}-{self.end_time})>"
