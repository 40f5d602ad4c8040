from flask import current_app
from supabase import create_client


def init_supabase(app):
    url = app.config.get('SUPABASE_URL')
    # Use service role key if available for backend operations, fallback to anon key
    key = app.config.get('SUPABASE_SERVICE_ROLE_KEY') or app.config.get('SUPABASE_KEY')

    if not url or not key:
        app.logger.warning("Supabase not configured (SUPABASE_URL / SUPABASE_KEY missing).")
        return None

    return create_client(url, key)


def check_connection(client):
    """Cheap round trip used by the health check."""
    if client is None:
        return False
    try:
        client.table('empresas').select('id').limit(1).execute()
        return True
    except Exception as e:
        current_app.logger.error(f"Supabase connection check failed: {e}")
        return False
