from databases import Database
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from greencare.config import DATABASE_URL

database = Database(DATABASE_URL)
engine = create_engine(DATABASE_URL, pool_pre_ping=True)
Base = declarative_base()
