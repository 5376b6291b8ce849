"""Switch control endpoints"""
import logging
from flask import Blueprint, request, jsonify
from services.command_channel import CommandChannel, VoiceIntent
from services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

switch_bp = Blueprint('switch', __name__)
connection_manager = ConnectionManager()
command_channel = CommandChannel(connection_manager)


@switch_bp.route('/switch', methods=['GET'])
def get_switch_status():
    """Current connection status and last known switch state"""
    return jsonify(connection_manager.get_status()), 200


@switch_bp.route('/switch/connect', methods=['POST'])
def connect_switch():
    """
    (Re)connect to the switch
    
    Optional JSON body to change the peer first:
    {
        "host": "192.168.75.23",
        "port": 81
    }
    
    Any existing connection is dropped before the new attempt. A failed
    attempt is not an error: the status says why and a retry is scheduled.
    """
    try:
        data = request.get_json(silent=True) or {}
        
        if 'host' in data:
            success, message = connection_manager.set_peer(data['host'], data.get('port'))
            if not success:
                logger.warning(f"Rejected peer address: {message}")
                return jsonify({'error': 'Invalid peer address', 'message': message}), 400
        
        connection_manager.disconnect()
        connected = connection_manager.connect()
        
        status = connection_manager.get_status()
        status['message'] = 'Connected' if connected else status['status_text']
        return jsonify(status), 200
        
    except Exception as e:
        logger.exception(f"Unexpected error while connecting: {str(e)}")
        return jsonify({'error': f'Internal server error: {str(e)}'}), 500


@switch_bp.route('/switch/disconnect', methods=['POST'])
def disconnect_switch():
    """Close the connection without reconnecting"""
    connection_manager.disconnect()
    return jsonify(connection_manager.get_status()), 200


@switch_bp.route('/switch/toggle', methods=['POST'])
def toggle_switch():
    """
    Ask the switch to flip its state
    
    The returned switch_state is still the old one; it changes when the
    switch reports back.
    """
    sent, message = command_channel.toggle()
    status = connection_manager.get_status()
    status['message'] = message
    
    if not sent:
        return jsonify(status), 409
    return jsonify(status), 200


@switch_bp.route('/switch/intent', methods=['POST'])
def dispatch_intent():
    """
    Carry out a recognized voice intent
    
    Expected format:
    {
        "intent": "turn_on" | "turn_off" | "reconnect"
    }
    """
    data = request.get_json(silent=True) or {}
    intent = VoiceIntent.parse(data.get('intent'))
    
    if intent is None:
        return jsonify({
            'error': 'Invalid intent',
            'message': 'Say "on", "off", or "connect"'
        }), 400
    
    logger.info(f"Dispatching intent {intent.value}")
    success, message = command_channel.dispatch(intent)
    status = connection_manager.get_status()
    status['message'] = message
    return jsonify(status), 200 if success else 409
