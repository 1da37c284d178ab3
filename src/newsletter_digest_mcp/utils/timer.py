from datetime import UTC, datetime

from pydantic import BaseModel, Field, computed_field


class RunningTimer(BaseModel):
    name: str
    start_time: datetime = Field(default_factory=lambda: datetime.now(tz=UTC), exclude=True)

    def stop(self) -> "FinishedTimer":
        return FinishedTimer(name=self.name, start_time=self.start_time)


class Timer(RunningTimer):
    pass


class FinishedTimer(RunningTimer):
    end_time: datetime = Field(default_factory=lambda: datetime.now(tz=UTC), exclude=True)

    @computed_field()
    @property
    def duration(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @computed_field()
    @property
    def duration_ms(self) -> int:
        return round(self.duration * 1000)
