from plugins.mysql.findings import Section


def get_report_definition():
    """
    Returns the default report definition for the MySQL plugin.
    This defines the sections and the order their content is rendered in.
    """
    return [
        {
            'title': 'General Statistics',
            'actions': [
                {'type': 'findings', 'section': Section.GENERAL},
            ]
        },
        {
            'title': 'Storage Engine Statistics',
            'actions': [
                {'type': 'facts', 'section': Section.STORAGE_ENGINES},
                {'type': 'findings', 'section': Section.STORAGE_ENGINES},
            ]
        },
        {
            'title': 'Performance Metrics',
            'actions': [
                {'type': 'facts', 'section': Section.PERFORMANCE},
                {'type': 'findings', 'section': Section.PERFORMANCE},
            ]
        },
        {
            'title': 'Recommendations',
            'actions': [
                {'type': 'recommendations'},
            ]
        },
    ]
