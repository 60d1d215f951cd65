from dataset.storage import DatasetStore
from dataset.sqlite_storage import SQLiteDatasetStore
from dataset.export import export_dataset, ExportIOError
