from pos_terminal import create_app, db
import os

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# Local tables (catalog snapshot, sale journal) must exist before the
# first cashier logs in.
with app.app_context():
    db.create_all()

if __name__ == "__main__":
    app.run()
