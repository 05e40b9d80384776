import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///giftswap.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Host account seeded by `flask db-reset`
    HOST_USERNAME = os.environ.get('HOST_USERNAME', 'host')
    HOST_PASSWORD = os.environ.get('HOST_PASSWORD', 'julklapp')
    # Comma separated list of browser origins allowed to call the API
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
        ).split(',') if o.strip()
    ]
    MAX_VOTER_NAME_LENGTH = int(os.environ.get('MAX_VOTER_NAME_LENGTH', '64'))
