import logging
import sys

import mysql.connector

from plugins.common.retry_utils import retry_on_failure
from plugins.mysql.exceptions import AcquisitionFailure
from plugins.mysql.utils.mysql_version_compatibility import SYSTEM_SCHEMAS, get_table_engine_sizes_query

logger = logging.getLogger(__name__)


def _text(value):
    """Driver values may come back as bytes on older servers."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    return value


class MySQLConnector:
    """Handles all direct communication with the MySQL database."""

    def __init__(self, settings):
        self.settings = settings
        self.conn = None
        self.cursor = None
        self.version_info = {}
        self.login_without_password = False

    def _connection_args(self):
        args = {
            'user': self.settings.get('user') or '',
            'password': self.settings.get('password') or '',
            'connection_timeout': self.settings.get('connection_timeout', 10),
        }
        if self.settings.get('unix_socket'):
            args['unix_socket'] = self.settings['unix_socket']
        else:
            args['host'] = self.settings.get('host', 'localhost')
            args['port'] = self.settings.get('port', 3306)
        return args

    def connect(self):
        """Establishes a connection to the database and fetches version info."""
        connect = retry_on_failure(
            max_attempts=self.settings.get('connect_attempts', 1),
            delay=self.settings.get('connect_retry_delay', 1.0),
            exceptions=(mysql.connector.Error,),
        )(mysql.connector.connect)
        args = self._connection_args()

        try:
            self.conn = connect(**args)
            self.cursor = self.conn.cursor(dictionary=True)  # Use dictionary cursor for easy row access
            self.version_info = self._get_version_info()
        except mysql.connector.Error as e:
            print(f"❌ Error connecting to MySQL: {e}", file=sys.stderr)
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                self.cursor = None
            raise AcquisitionFailure(f"Unable to connect to MySQL: {e}") from e

        self.login_without_password = not args['password']
        print("✅ Successfully connected to MySQL.", file=sys.stderr)
        print(f"   - Version: {self.version_info.get('version_string', 'Unknown')}", file=sys.stderr)

    def disconnect(self):
        """Closes the database connection."""
        if self.conn and self.conn.is_connected():
            self.cursor.close()
            self.conn.close()
            print("🔌 Disconnected from MySQL.", file=sys.stderr)

    def _get_version_info(self):
        """Private method to get MySQL version information."""
        self.cursor.execute("SELECT @@version AS version, @@version_comment AS source")
        result = self.cursor.fetchone() or {}
        version_string = _text(result.get('version')) or 'Unknown'
        source = _text(result.get('source')) or ''
        return {
            'version_string': version_string,
            'version_comment': source,
            'is_mariadb': 'mariadb' in f"{version_string} {source}".lower(),
        }

    def _fetch_all(self, query, params=None):
        try:
            self.cursor.execute(query, params or ())
            return self.cursor.fetchall()
        except mysql.connector.Error as e:
            raise AcquisitionFailure(f"Query failed: {e}") from e

    def _fetch_name_value(self, query):
        rows = self._fetch_all(query)
        return {_text(row['Variable_name']): _text(row['Value']) for row in rows}

    def get_variables(self):
        """Returns server variables as a name -> raw string mapping."""
        variables = self._fetch_name_value("SHOW /*!50000 GLOBAL */ VARIABLES")
        logger.debug(f"Fetched {len(variables)} server variables")
        return variables

    def get_status(self):
        """Returns server status counters as a name -> raw string mapping."""
        status = self._fetch_name_value("SHOW /*!50000 GLOBAL */ STATUS")
        logger.debug(f"Fetched {len(status)} status counters")
        return status

    def get_table_engine_sizes(self, capabilities):
        """
        Lists (engine, data length) for every table outside the system schemas.

        Uses information_schema when the server has it, otherwise walks
        SHOW DATABASES and SHOW TABLE STATUS per database. A database whose
        table status cannot be read is skipped.
        """
        query = get_table_engine_sizes_query(capabilities)
        if query is not None:
            rows = self._fetch_all(query, SYSTEM_SCHEMAS)
            return [(_text(row['ENGINE']), row['DATA_LENGTH']) for row in rows]

        sizes = []
        for row in self._fetch_all("SHOW DATABASES"):
            database = _text(next(iter(row.values())))
            if database in SYSTEM_SCHEMAS:
                continue
            safe_name = database.replace('`', '``')
            try:
                tables = self._fetch_all(f"SHOW TABLE STATUS FROM `{safe_name}`")
            except AcquisitionFailure as e:
                logger.warning(f"Skipping database {database}: {e}")
                continue
            for table in tables:
                # Servers before 4.1 call the engine column 'Type'.
                engine = table.get('Engine', table.get('Type'))
                sizes.append((_text(engine), table.get('Data_length')))
        return sizes

    def get_db_metadata(self):
        """Fetches basic metadata for the structured findings export."""
        return {
            'version': self.version_info.get('version_string', 'N/A'),
            'version_comment': self.version_info.get('version_comment', 'N/A'),
            'is_mariadb': self.version_info.get('is_mariadb', False),
            'host': self.settings.get('unix_socket') or self.settings.get('host', 'N/A'),
        }
