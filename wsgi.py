from app_factory import create_app
from database_init import db

app = create_app()

if __name__ == "__main__":
    from seeder.seed_user import seed_admin_user

    with app.app_context():
        db.create_all()
        seed_admin_user(app)

    app.run(host="0.0.0.0", port=4000, debug=True)
