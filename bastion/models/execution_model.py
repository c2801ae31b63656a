from bastion.models.db import db


class ExecutionRow(db.Model):
    __tablename__ = "executions"

    # command_id/node_id are plain columns: history outlives deleted commands
    id = db.Column(db.String(64), primary_key=True)
    command_id = db.Column(db.String(64), nullable=False, index=True)
    node_id = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    stdout = db.Column(db.Text, nullable=False, default="")
    stderr = db.Column(db.Text, nullable=False, default="")
    exit_code = db.Column(db.Integer, nullable=False, default=0)
    duration_ms = db.Column(db.BigInteger, nullable=False, default=0)
