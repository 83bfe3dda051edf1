"""
CreatorConnect entry point.
"""
import os
import sys
import traceback

print("[CreatorConnect] ========================================")
print("[CreatorConnect] Starting CreatorConnect v1.0.0")
print("[CreatorConnect] ========================================")

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[CreatorConnect] Config: {config_name}")
print(f"[CreatorConnect] PORT: {os.getenv('PORT', 'not set')}")
print(f"[CreatorConnect] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")

try:
    from app import create_app
    app = create_app(config_name)
    print(f"[CreatorConnect] Routes: {len(list(app.url_map.iter_rules()))}")
except Exception as e:
    print(f"[CreatorConnect] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
