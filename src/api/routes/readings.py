"""Reading history endpoint"""
import logging
from flask import Blueprint, jsonify
from config.controller_config import ControllerConfig
from services.reading_monitor import ReadingMonitor
from services.remote_store import FirestoreStore

logger = logging.getLogger(__name__)

readings_bp = Blueprint('readings', __name__)
reading_monitor = ReadingMonitor(FirestoreStore(), ControllerConfig.MONITORED_DEVICE_ID)


@readings_bp.route('/readings', methods=['GET'])
def get_readings():
    """
    Latest readings of the monitored device
    
    Returns the current temperature and humidity, the time of the last
    update and up to 30 recent points for charting.
    """
    if not reading_monitor.start():
        return jsonify({'error': 'Remote store unavailable'}), 503
    return jsonify(reading_monitor.get_history()), 200
