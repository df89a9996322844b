from sqlalchemy import Column, Integer, String, Text, DateTime, Index

from messenger.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(String(255), nullable=False, index=True)
    sender = Column(String(100), nullable=False)
    text = Column(Text, nullable=False)
    time = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_messages_chat_created', 'chat_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, chat_id='{self.chat_id}', sender='{self.sender}')>"
