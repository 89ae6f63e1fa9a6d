import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .conservation import QuantumNumbers
from .kinematics import FourVector

DB_PATH = Path(__file__).resolve().parents[1] / "reactions.db"


class InteractionLog:
    """
    Stores performed interactions in reactions.db.

    One row in ``interactions`` per process and one row, with the particle's
    provenance (collisions, process id and type, mothers), in
    ``interaction_particles`` per incoming or outgoing particle.
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self.create_tables()

    @contextmanager
    def get_connection(self):
        """Context manager for safe DB access."""
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def create_tables(self):
        with self.get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS interactions (
                    interaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event INTEGER,
                    id_process INTEGER,
                    process_type TEXT,
                    n_in INTEGER,
                    n_out INTEGER,
                    density REAL,
                    sqrt_s REAL,
                    total_weight REAL,
                    partial_weight REAL,
                    time REAL,
                    conserved INTEGER,
                    timestamp TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS interaction_particles (
                    row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    interaction_id INTEGER,
                    direction TEXT,
                    particle_id INTEGER,
                    pdg INTEGER,
                    charge INTEGER,
                    t REAL, x REAL, y REAL, z REAL,
                    E REAL, px REAL, py REAL, pz REAL,
                    mass REAL,
                    formation_time REAL,
                    xsec_scaling REAL,
                    collisions INTEGER,
                    id_process INTEGER,
                    process_type TEXT,
                    time_last_collision REAL,
                    mother1 INTEGER,
                    mother2 INTEGER,
                    FOREIGN KEY(interaction_id) REFERENCES interactions(interaction_id)
                )
            """)

    def store_interaction(self, record, event: int = 0, density: float = 0.0) -> int:
        """
        Store an InteractionRecord (see ``Action.interaction_record``).

        Conservation is re-checked here so the flag reflects what was stored.
        Returns the new interaction_id.
        """
        conserved = not QuantumNumbers.of(record.incoming).report_deviations(
            QuantumNumbers.of(record.outgoing)
        )
        with self.get_connection() as conn:
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO interactions (
                    event, id_process, process_type, n_in, n_out, density, sqrt_s,
                    total_weight, partial_weight, time, conserved, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                event, record.id_process, record.process_type.name,
                len(record.incoming), len(record.outgoing), density, record.sqrt_s,
                record.total_weight, record.partial_weight, record.time,
                int(conserved), datetime.now().isoformat(timespec="seconds"),
            ))
            interaction_id = cur.lastrowid
            rows = [("in", p) for p in record.incoming] + [("out", p) for p in record.outgoing]
            cur.executemany("""
                INSERT INTO interaction_particles (
                    interaction_id, direction, particle_id, pdg, charge,
                    t, x, y, z, E, px, py, pz,
                    mass, formation_time, xsec_scaling, collisions, id_process,
                    process_type, time_last_collision, mother1, mother2
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                          ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (interaction_id, direction, p.id, p.pdgcode, p.type.charge,
                 *(float(v) for v in np.asarray(p.position, dtype=float)),
                 *p.momentum.to_tuple(),
                 p.effective_mass, p.formation_time, p.xsec_scaling_factor,
                 p.history.collisions, p.history.id_process, p.history.process_type.name,
                 p.history.time_last_collision, p.history.p1, p.history.p2)
                for direction, p in rows
            ])
        return interaction_id

    def parse_interaction(self, interaction_id: int) -> Optional[Dict[str, Any]]:
        """
        Reconstruct an interaction with FourVector momenta.
        Returns None if interaction_id is not found.
        """
        with self.get_connection() as conn:
            conn.row_factory = sqlite3.Row
            cur = conn.cursor()
            cur.execute("SELECT * FROM interactions WHERE interaction_id = ?", (interaction_id,))
            row = cur.fetchone()
            if not row:
                return None
            cur.execute(
                "SELECT * FROM interaction_particles WHERE interaction_id = ? ORDER BY row_id",
                (interaction_id,),
            )
            particles = cur.fetchall()

        def unpack(direction):
            return [
                {
                    "id": r["particle_id"],
                    "pdg": r["pdg"],
                    "charge": r["charge"],
                    "position": (r["t"], r["x"], r["y"], r["z"]),
                    "momentum": FourVector(r["E"], r["px"], r["py"], r["pz"]),
                    "mass": r["mass"],
                    "formation_time": r["formation_time"],
                    "xsec_scaling": r["xsec_scaling"],
                    "collisions": r["collisions"],
                    "id_process": r["id_process"],
                    "process_type": r["process_type"],
                    "time_last_collision": r["time_last_collision"],
                    "mothers": (r["mother1"], r["mother2"]),
                }
                for r in particles if r["direction"] == direction
            ]

        result = dict(row)
        result["conserved"] = bool(row["conserved"])
        result["incoming"] = unpack("in")
        result["outgoing"] = unpack("out")
        return result

    def list_interactions(
        self,
        limit: int = 10,
        process_type: Optional[str] = None,
        conserved_only: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Return recent interactions, optionally filtered.

        Args:
            limit: Max number of rows to return
            process_type: Filter by type name (e.g. "DECAY")
            conserved_only: Only return interactions that passed the conservation check
        """
        with self.get_connection() as conn:
            conn.row_factory = sqlite3.Row
            cur = conn.cursor()

            query = "SELECT * FROM interactions WHERE 1=1"
            params = []

            if process_type:
                query += " AND process_type = ?"
                params.append(process_type)

            if conserved_only:
                query += " AND conserved = 1"

            query += " ORDER BY interaction_id DESC LIMIT ?"
            params.append(limit)

            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]

    def stats(self) -> Dict[str, Any]:
        """Summary statistics."""
        with self.get_connection() as conn:
            cur = conn.cursor()

            cur.execute("SELECT COUNT(*) FROM interactions")
            total = cur.fetchone()[0]

            cur.execute("SELECT COUNT(*) FROM interactions WHERE conserved = 1")
            conserved = cur.fetchone()[0]

            cur.execute("""
                SELECT process_type, COUNT(*) FROM interactions
                GROUP BY process_type ORDER BY COUNT(*) DESC
            """)
            by_type = dict(cur.fetchall())

            cur.execute("SELECT AVG(sqrt_s) FROM interactions")
            avg_srts = cur.fetchone()[0] or 0.0

        return {
            "total_interactions": total,
            "conserved": conserved,
            "by_process_type": by_type,
            "average_sqrt_s": avg_srts,
            "conservation_rate": conserved / total if total > 0 else 0.0
        }

    def clear_interactions(self):
        """Delete all stored interactions."""
        with self.get_connection() as conn:
            conn.execute("DELETE FROM interaction_particles")
            conn.execute("DELETE FROM interactions")
