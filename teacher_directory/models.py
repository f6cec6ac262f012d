# teacher_directory/models.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, LargeBinary, String, Text, func

from .db import Base


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    mime_type = Column(String, nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    # exactly one of these is set, depending on the storage mode
    data = Column(LargeBinary, nullable=True)
    path = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Person(Base):
    __tablename__ = "people"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    # casefolded copy of name, matched by search
    name_folded = Column(String, index=True, nullable=False)
    branch = Column(String, nullable=False)
    floor = Column(String, nullable=False)
    directions = Column(Text, nullable=False)
    image_id = Column(Integer, ForeignKey("images.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
