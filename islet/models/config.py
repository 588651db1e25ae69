from pydantic import BaseModel, Field


class SiteConfig(BaseModel):
    """Directory layout, file extensions and marker names used by the engine."""

    # Source directories, relative to the site source root
    partials_dir: str = "views/partials"
    data_dir: str = "views/data"
    layouts_dir: str = "views/layouts"
    helpers_dir: str = "views/helpers"
    pages_dir: str = "views/pages"
    collections_dir: str = "views/collections"

    template_extension: str = ".html"
    data_extension: str = ".json"
    helper_extension: str = ".py"
    collection_extension: str = ".md"

    # Marker attributes selecting data / content islands in markup
    data_marker: str = "islet-data"
    script_marker: str = "islet-script"
    template_data_marker: str = "islet-template-data"
    collection_data_marker: str = "islet-collection-data"
    collection_prefix: str = "islet-collection-"

    # Names under which page attributes are exposed to templates
    data_key: str = "page_data"
    script_key: str = "page_script"
    path_key: str = "page_path"
    template_data_key: str = "template_data"

    default_layout: str = Field(
        default="default",
        description="Layout used when a page names none, or names one that is not registered.",
    )
    html_parser: str = Field(
        default="html.parser",
        description=(
            "BeautifulSoup tree builder used for marker extraction.  The stdlib "
            "parser keeps fragments as-is; lxml would wrap them in <html><body>."
        ),
    )
