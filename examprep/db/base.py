# examprep/db/base.py
# Import all models here so Base.metadata sees every table
from examprep.db.base_class import Base  # noqa

from examprep.models.submission import Submission  # noqa
from examprep.models.evaluation import Evaluation  # noqa
from examprep.models.resource_material import ResourceMaterial  # noqa
from examprep.models.generated_content import GeneratedContent  # noqa
from examprep.models.mock_paper import MockPaper, MockQuestion  # noqa
