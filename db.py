# db.py
from datetime import datetime

from flask_login import UserMixin
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from config import Config

engine = create_engine(Config.DATABASE_URL)
Base = declarative_base()
Session = sessionmaker(bind=engine)


class User(Base, UserMixin):
    __tablename__ = "user"
    id = Column(Integer, primary_key=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255))
    firstname = Column(String(255))
    lastname = Column(String(255))
    email = Column(String(255))
    cat_id = Column(String(255), unique=True)
    cat_username = Column(String(50))
    # Legacy plaintext catalog password, cleared once encryption is in use
    cat_password = Column(String(70))
    cat_pass_enc = Column(Text)
    home_library = Column(String(100))
    created = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime)
    cards = relationship("UserCard", back_populates="user")


class UserCard(Base):
    __tablename__ = "user_card"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    card_name = Column(String(255), default="")
    cat_username = Column(String(50))
    cat_password = Column(String(70))
    cat_pass_enc = Column(Text)
    home_library = Column(String(100))
    created = Column(DateTime, default=datetime.utcnow)
    saved = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    user = relationship("User", back_populates="cards")


Base.metadata.create_all(engine)
