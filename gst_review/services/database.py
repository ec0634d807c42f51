
from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError
from gst_review.core.config import NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD
from gst_review.utils.logging_config import get_logger

logger = get_logger("database")

driver = None

def connect_db():
    """
    Initializes the Neo4j driver and the invoice constraints.
    On failure the service keeps running without a database (store calls will 503).
    """
    global driver
    try:
        driver = GraphDatabase.driver(
            NEO4J_URI,
            auth=(NEO4J_USER, NEO4J_PASSWORD),
            max_connection_lifetime=200,
            keep_alive=True
        )
        driver.verify_connectivity()
        logger.info("Connected to Neo4j.")
        init_constraints(driver)
    except (Neo4jError, DriverError, OSError) as e:
        logger.error(f"Failed to connect to Neo4j: {e} - Application will start in partial mode (No DB)")
        driver = None

def get_db_driver():
    """
    Returns the active Neo4j driver, connecting lazily on first use.
    """
    if driver is None:
        connect_db()
    return driver

def close_db():
    global driver
    if driver:
        driver.close()
        driver = None
        logger.info("Neo4j driver closed.")

def init_constraints(driver):
    """
    invoice_id is the lookup key for every review write.
    """
    query = """
    CREATE CONSTRAINT invoice_id_unique IF NOT EXISTS
    FOR (i:Invoice) REQUIRE i.invoice_id IS UNIQUE
    """
    try:
        with driver.session() as session:
            session.run(query)
            logger.info("Constraint 'invoice_id_unique' initialization checked.")
    except Neo4jError as e:
        logger.error(f"Failed to create invoice constraint: {e}")
