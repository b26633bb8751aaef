"""
model_registry.py
~~~~~~~~~~~~~~~~~

SQLite-backed registry of saved networks.

Each row keeps the network's weight/bias document (the same JSON produced
by model_persistence) alongside queryable metadata: topology, activation
name, training status and validation accuracy.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Sequence, Union

from perceptron.activations import Activation, get_activation
from perceptron.learning_rate import LearningRatePolicy
from perceptron.model_persistence import NetworkEncoder, from_document, to_document
from perceptron.network import Network

logger = logging.getLogger(__name__)

_SCHEMA = (
    'CREATE TABLE IF NOT EXISTS networks ('
    ' network_id TEXT PRIMARY KEY,'
    ' architecture TEXT NOT NULL,'    # JSON list of layer widths
    ' activation TEXT NOT NULL,'
    ' document TEXT NOT NULL,'        # JSON weights/biases document
    ' trained INTEGER NOT NULL DEFAULT 0,'
    ' accuracy REAL,'                 # percentage, 0 to 100
    ' created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,'
    ' updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)'
)

_SELECT_METADATA = '''
    SELECT network_id, architecture, activation, trained, accuracy,
           created_at, updated_at
    FROM networks
'''


def _layer_shapes(architecture: Sequence[int]) -> Dict[str, List[List[int]]]:
    transitions = list(zip(architecture, architecture[1:]))
    return {
        'weights_shape': [[fan_out, fan_in] for fan_in, fan_out in transitions],
        'biases_shape': [[fan_out, 1] for _, fan_out in transitions],
    }


class ModelDatabase:
    """
    Registry of networks stored as JSON documents in SQLite.

    Database errors are logged and re-raised; lookups of unknown ids
    return None (or False for deletes).
    """

    def __init__(self, db_path: str = 'models/networks.db'):
        """
        Open (and if needed create) the registry.

        Args:
            db_path: Path to the SQLite database file; its directory is
                created when missing
        """
        self.db_path = db_path
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute(_SCHEMA)
            conn.execute(
                'CREATE INDEX IF NOT EXISTS idx_created_at '
                'ON networks(created_at DESC)'
            )

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection that commits on success and rolls back on error.

        Yields:
            sqlite3.Connection: Connection returning rows by column name
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            if isinstance(e, sqlite3.Error):
                logger.error(f"Database error on '{self.db_path}': {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _row_to_metadata(row: sqlite3.Row) -> Dict[str, Any]:
        metadata = dict(zip(row.keys(), row))
        metadata['architecture'] = json.loads(metadata['architecture'])
        metadata['trained'] = bool(metadata['trained'])
        metadata.update(_layer_shapes(metadata['architecture']))
        return metadata

    def save_network_to_db(
        self,
        network: Network,
        network_id: str,
        trained: bool = True,
        accuracy: Optional[float] = None
    ) -> None:
        """
        Save a network, replacing any previous entry with the same id.

        The creation time of a replaced entry is reset.

        Args:
            network: Network to save
            network_id: Key the network is stored under
            trained: Recorded training status
            accuracy: Validation accuracy as a percentage (0 to 100)

        Raises:
            ValueError: If network_id is empty or accuracy is out of range
        """
        if not isinstance(network_id, str) or not network_id:
            raise ValueError("network_id must be a non-empty string")
        if accuracy is not None and not 0.0 <= accuracy <= 100.0:
            raise ValueError(
                f"Accuracy must be between 0 and 100, got {accuracy}"
            )

        document_json = json.dumps(
            to_document(network, include_topology=True), cls=NetworkEncoder
        )

        with self._get_connection() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO networks
                (network_id, architecture, activation, document, trained,
                 accuracy, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            ''', (
                network_id,
                json.dumps(network.layers, cls=NetworkEncoder),
                network.activation.name,
                document_json,
                int(trained),
                accuracy
            ))

        logger.info(
            f"Registered network '{network_id}' ({network.model_name()}, "
            f"{network.activation.name}), trained={trained}, accuracy={accuracy}"
        )

    def load_network_from_db(
        self,
        network_id: str,
        learning_rate: Union[float, LearningRatePolicy] = 0.01,
        activation: Optional[Activation] = None
    ) -> Optional[Network]:
        """
        Rebuild a saved network.

        Args:
            network_id: Key the network was stored under
            learning_rate: Policy for the rebuilt network
            activation: Activation to use; defaults to the built-in
                activation recorded with the network

        Returns:
            Network or None if not found

        Raises:
            KeyError: If the stored activation is not built in and none
                was given
            MalformedDocument: If the stored document is invalid
            TopologyMismatch: If the stored document does not fit the
                stored architecture
        """
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT architecture, activation, document '
                'FROM networks WHERE network_id = ?',
                (network_id,)
            ).fetchone()

        if row is None:
            logger.warning(f"No network stored under '{network_id}'")
            return None

        if activation is None:
            activation = get_activation(row['activation'])

        network = Network(
            json.loads(row['architecture']),
            learning_rate=learning_rate,
            activation=activation
        )
        network.weights, network.biases = from_document(
            json.loads(row['document']), network.layers
        )

        logger.info(f"Loaded network '{network_id}' ({network.model_name()})")
        return network

    def list_networks_from_db(self) -> List[Dict[str, Any]]:
        """Metadata of every network, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                _SELECT_METADATA + ' ORDER BY created_at DESC'
            ).fetchall()

        logger.debug(f"Listed {len(rows)} networks")
        return [self._row_to_metadata(row) for row in rows]

    def get_network_metadata_from_db(
        self,
        network_id: str
    ) -> Optional[Dict[str, Any]]:
        """Metadata of one network without rebuilding it, or None."""
        with self._get_connection() as conn:
            row = conn.execute(
                _SELECT_METADATA + ' WHERE network_id = ?',
                (network_id,)
            ).fetchone()

        if row is None:
            logger.warning(f"No metadata stored under '{network_id}'")
            return None
        return self._row_to_metadata(row)

    def delete_network_from_db(self, network_id: str) -> bool:
        """
        Delete a network.

        Returns:
            bool: True if deleted, False if the id is unknown
        """
        with self._get_connection() as conn:
            removed = conn.execute(
                'DELETE FROM networks WHERE network_id = ?',
                (network_id,)
            ).rowcount

        if removed:
            logger.info(f"Removed network '{network_id}' from the registry")
        else:
            logger.warning(f"No network stored under '{network_id}', nothing removed")
        return removed > 0

    def delete_old_networks_from_db(self, days: int) -> int:
        """
        Delete networks created more than ``days`` days ago.

        Args:
            days: Age threshold in days

        Returns:
            int: Number of networks deleted

        Raises:
            ValueError: If days is negative
        """
        if days < 0:
            raise ValueError(f"days must be non-negative, got {days}")

        with self._get_connection() as conn:
            removed = conn.execute(
                "DELETE FROM networks WHERE created_at < datetime('now', ?)",
                (f'-{days} days',)
            ).rowcount

        logger.info(f"Deleted {removed} network(s) older than {days} day(s)")
        return removed
