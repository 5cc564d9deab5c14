"""
Logistics Task Management
Outbound notification log.

Models:
    - EmailLog: one record per review e-mail, whether delivered, logged only or failed
"""

from datetime import datetime, timezone

from logitask.models import db


class EmailLog(db.Model):
    """
    Outbound email audit log.

    Every review notification is recorded here for debugging delivery.
    """

    __tablename__ = "email_logs"

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    recipient_name = db.Column(db.String(150), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    template_name = db.Column(db.String(100), nullable=True,
                              comment="Email template used")
    status = db.Column(db.String(20), default="queued",
                       comment="queued, sent, failed")
    error_message = db.Column(db.Text, nullable=True)

    submission_id = db.Column(db.Integer, nullable=True, index=True,
                              comment="Reviewed submission that triggered this email")

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "subject": self.subject,
            "template_name": self.template_name,
            "status": self.status,
            "error_message": self.error_message,
            "submission_id": self.submission_id,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
