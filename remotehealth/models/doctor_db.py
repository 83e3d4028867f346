from extensions import db
from remotehealth.models.credentials import CredentialsMixin

class Doctor(CredentialsMixin, db.Model):
    __tablename__ = "doctors"

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100))
    password = db.Column(db.String(255))
