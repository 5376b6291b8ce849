"""Entry point for the switch controller API"""
import os
import logging
from flask import Flask
from api.routes.switch import switch_bp, connection_manager
from api.routes.readings import readings_bp, reading_monitor

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Initialize Flask app
app = Flask(__name__)

# Register blueprints
app.register_blueprint(switch_bp)
app.register_blueprint(readings_bp)

@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return {'status': 'healthy', 'switch': connection_manager.status.value}, 200

if __name__ == '__main__':
    reading_monitor.start()
    port = int(os.environ.get('PORT', 8080))
    try:
        app.run(host='0.0.0.0', port=port, debug=False, threaded=True)
    finally:
        connection_manager.disconnect()
        reading_monitor.stop()
