from bastion.models.db import db


class CommandRow(db.Model):
    __tablename__ = "commands"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    script = db.Column(db.Text, nullable=False)
    timeout_seconds = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)


class NodeRow(db.Model):
    __tablename__ = "nodes"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(1024), nullable=False)
