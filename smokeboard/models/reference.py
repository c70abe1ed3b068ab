from sqlmodel import SQLModel


class StateInfo(SQLModel):
    name: str = ""
    abbreviation: str = ""

    @property
    def label(self) -> str:
        return self.abbreviation or self.name
