from app.db.config import Settings


def test_masked_url_hides_only_the_password():
    s = Settings(db_user="postgres", db_password="postgres", db_host="db", db_port=5432, db_name="ingestdb")
    assert s.masked_database_url() == "postgresql://postgres:*****@db:5432/ingestdb"
    assert s.database_url == "postgresql://postgres:postgres@db:5432/ingestdb"


def test_extensions_are_normalised():
    s = Settings(allowed_extensions="TXT, .Pdf,,csv")
    assert s.extensions == [".txt", ".pdf", ".csv"]
