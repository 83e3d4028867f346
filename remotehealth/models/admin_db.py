from extensions import db
from remotehealth.models.credentials import CredentialsMixin

class Administrator(CredentialsMixin, db.Model):
    __tablename__ = "admin"

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    email = db.Column(db.String(100))
    password = db.Column(db.String(255), nullable=False)
