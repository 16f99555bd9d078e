# app.py
# WSGI / local dev entrypoint:  flask --app app run   or   python app.py
from core import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
