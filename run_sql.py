import os
import sys
from sqlalchemy import text
from app.extensions import db
from app.models import Base
from main import create_app

app = create_app()

# Optional SQL file run after the tables exist (seed data, policies, ...)
sql_path = sys.argv[1] if len(sys.argv) > 1 else None

with app.app_context():
    Base.metadata.create_all(bind=db.engine)
    print("Tables created (existing tables left untouched)")

    if sql_path:
        if not os.path.exists(sql_path):
            print(f"SQL file not found: {sql_path}")
            sys.exit(1)
        with open(sql_path) as f:
            sql_commands = f.read()
            db.session.execute(text(sql_commands))  # wrap in text()
            db.session.commit()
        print(f"SQL script {sql_path} executed successfully!")
