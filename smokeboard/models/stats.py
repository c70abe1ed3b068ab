from sqlmodel import SQLModel


class Stats(SQLModel):
    events: int = 0
    teams: int = 0
    schools: int = 0
    states: int = 0
