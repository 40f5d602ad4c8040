import os
import sys
import traceback

# Add ROOT to sys.path (to find the 'pesquisa_rh' package on Vercel)
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.append(root_dir)

try:
    from pesquisa_rh.app import create_app
    app = create_app()

except Exception as e:
    # Boot failure: answer every route with the error instead of a blank 500
    from flask import Flask, jsonify

    boot_error = str(e)
    boot_traceback = traceback.format_exc()
    app = Flask(__name__)
    app.logger.error(f"CRITICAL BOOT ERROR: {boot_error}\n{boot_traceback}")

    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def catch_all(path):
        return jsonify({'success': False, 'data': None, 'error': f"Boot error: {boot_error}"}), 500
