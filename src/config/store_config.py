"""Remote store configuration"""
import os


class StoreConfig:
    """Firestore settings and path layout for device records"""
    
    # Get from environment variables
    PROJECT_ID = os.environ.get('GCP_PROJECT', '')
    
    # Upper bound on any single store call, so the device loop never stalls
    REMOTE_TIMEOUT_SECONDS = float(os.environ.get('REMOTE_TIMEOUT_SECONDS', '3'))
    
    # After a failed client creation (e.g. missing credentials), wait this long before trying again
    CLIENT_RETRY_SECONDS = float(os.environ.get('CLIENT_RETRY_SECONDS', '5'))
    
    # Collection and field names
    DEVICES_COLLECTION = 'devices'
    CURRENT_FIELD = 'current'
    METADATA_FIELD = 'metadata'
    ERRORS_SUBCOLLECTION = 'errors'
    
    @staticmethod
    def get_device_path(device_id: str) -> str:
        """Get store path of the device document"""
        return f'{StoreConfig.DEVICES_COLLECTION}/{device_id}'
    
    @staticmethod
    def get_current_path(device_id: str, field: str = None) -> str:
        """Get store path of the current record, or of one of its fields"""
        path = f'{StoreConfig.get_device_path(device_id)}/{StoreConfig.CURRENT_FIELD}'
        return f'{path}/{field}' if field else path
    
    @staticmethod
    def get_last_online_path(device_id: str) -> str:
        """Get store path of the last_online marker"""
        return f'{StoreConfig.get_device_path(device_id)}/{StoreConfig.METADATA_FIELD}/last_online'
    
    @staticmethod
    def get_errors_path(device_id: str) -> str:
        """Get store path of the append-only error log"""
        return f'{StoreConfig.get_device_path(device_id)}/{StoreConfig.ERRORS_SUBCOLLECTION}'
