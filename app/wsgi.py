from app.growshare import create_app

app = create_app()
