from flask import Blueprint, request, jsonify, current_app
from .models import db, User, validate_username, validate_password
from flask_login import login_user, logout_user, login_required, current_user

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Memory game server!'})

@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    errors = validate_username(username) + validate_password(password)
    if 'confirm_password' in data and data['confirm_password'] != password:
        errors.append('Passwords do not match')
    if not errors and User.query.filter_by(username=username).first():
        errors.append('Username already exists')
    if errors:
        return jsonify({"success": False, "message": '. '.join(errors), "errors": errors}), 400

    new_user = User(username=username)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    current_app.logger.info(f"[register] user={new_user.id} username={new_user.username}")
    return jsonify({"success": True, "user": new_user.to_dict()}), 201

@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=(data.get('username') or '').strip()).first()
    if user and user.check_password(data.get('password')):
        login_user(user, remember=True)
        current_app.logger.info(f"[login] user={user.id}")
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401

@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    if not current_user.is_authenticated:
        return jsonify({"success": False}), 401
    return jsonify({"success": True, "user": current_user.to_dict()})

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
