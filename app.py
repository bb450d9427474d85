import json

import streamlit as st

from src.audit.logger import write_audit
from src.config import get_settings
from src.core.errors import QueryError
from src.dsl.schema import QueryRequest, TableSchema
from src.sql.executor import SqliteExecutor
from src.sql.service import QueryService

SCHEMAS = [
    TableSchema(
        name="users",
        columns=["id", "name", "email", "status", "age", "region", "created_at", "description"],
        temporal_columns=["created_at"],
    ),
]

st.set_page_config(page_title='querykit – dynamic query playground', layout='wide')
st.title('querykit – dynamic query playground')

settings = get_settings()

st.sidebar.header('Request (JSON)')
default_request = {
    "fields": ["id", "name", "status", "age", "created_at"],
    "filters": {"age": {"gte": 21}, "status": {"in": ["active", "pending"]}},
    "search": {"fields": ["name", "description"], "term": "cloud"},
    "sort": [{"field": "created_at", "direction": "DESC"}],
    "pagination": {"page": 1, "pageSize": 5},
}
text = st.sidebar.text_area('Query request', value=json.dumps(default_request, indent=2), height=360)
table = st.sidebar.selectbox('Table', [s.name for s in SCHEMAS])


@st.cache_resource
def load_service():
    executor = SqliteExecutor()
    # 샘플 CSV 로드 (실제 운영에선 DB 조회)
    executor.load_csv('users', f'{settings.data_dir}/users.csv', dtype={'email': str}, parse_dates=['created_at'])
    return QueryService(executor, SCHEMAS, settings)


service = load_service()

if st.sidebar.button('Compile'):
    try:
        raw = json.loads(text)
        request = QueryRequest.model_validate(raw)
        builder = service.create_from_request(table, request)
    except (QueryError, ValueError) as e:
        st.error(str(e))
        st.stop()

    compiled = builder.build(settings.param_style)
    st.subheader('SQL')
    st.code(compiled.sql, language='sql')
    st.caption(f'params: {compiled.params}')

    st.session_state['request_json'] = raw
    st.session_state['request'] = request
    st.session_state['compiled'] = compiled

if st.button('Run'):
    request = st.session_state.get('request')
    if request is None:
        st.warning('Compile a request first.')
    else:
        result = service.execute_query(table, request)
        st.subheader('Rows')
        st.dataframe(result.data)
        st.json(result.pagination.model_dump(by_alias=True))

        audit_path = write_audit(
            event_id='playground',
            request=st.session_state.get('request_json'),
            compiled=st.session_state['compiled'],
            outdir=settings.audit_dir,
        )
        st.success(f'audit record: {audit_path}')

st.info('Runs against an in-memory sqlite copy of data/users.csv.')
